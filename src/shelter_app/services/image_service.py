"""Image service: shrink captured photos before they are queued for upload."""
import base64
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path

from shared.utils import (
    calculate_dimensions, resize_image, generate_thumbnail, guess_content_type, is_video,
    MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT, JPEG_QUALITY,
)


@dataclass
class ProcessedImage:
    data: bytes
    width: int
    height: int
    file_name: str
    content_type: str = 'image/jpeg'
    preview_base64: str = ''

    @property
    def size_bytes(self):
        return len(self.data)


class ImageService:
    """Resizes and recompresses images to bounded dimensions and quality."""

    def __init__(self, local_store, max_width=MAX_IMAGE_WIDTH, max_height=MAX_IMAGE_HEIGHT,
                 quality=JPEG_QUALITY, thumbnail_max_size=200):
        self.local_store = local_store
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality
        self.thumbnail_max_size = thumbnail_max_size
        self.logger = logging.getLogger(self.__class__.__name__)

    def calculate_dimensions(self, width, height):
        return calculate_dimensions(width, height, self.max_width, self.max_height)

    def process_image(self, source, file_name=None):
        """Resize ``source`` (path or bytes) and re-encode it as JPEG.

        The original file name is kept; only the bytes and content type change.

        Raises:
            CorruptedImageError: The image cannot be decoded.
        """
        if isinstance(source, (bytes, bytearray)):
            data, width, height = resize_image(image_data=bytes(source), max_width=self.max_width,
                                               max_height=self.max_height, quality=self.quality)
        else:
            data, width, height = resize_image(image_path=str(source), max_width=self.max_width,
                                               max_height=self.max_height, quality=self.quality)
            file_name = file_name or Path(source).name

        thumbnail = generate_thumbnail(image_data=data, max_size=self.thumbnail_max_size)
        preview = f"data:image/jpeg;base64,{base64.b64encode(thumbnail).decode('ascii')}" if thumbnail else ''

        self.logger.debug(f"Processed image {file_name}: {width}x{height}, {len(data)} bytes")
        return ProcessedImage(
            data=data,
            width=width,
            height=height,
            file_name=file_name or 'photo.jpg',
            preview_base64=preview,
        )

    def process_media(self, source_path, file_name=None):
        """Process any captured file: images are resized, videos pass through unchanged."""
        file_name = file_name or Path(source_path).name
        content_type = guess_content_type(file_name)
        if not is_video(content_type):
            return self.process_image(source_path, file_name)

        with open(source_path, 'rb') as f:
            data = f.read()
        self.logger.debug(f"Passing video {file_name} through ({len(data)} bytes)")
        return ProcessedImage(data=data, width=0, height=0, file_name=file_name, content_type=content_type)

    def build_upload_item(self, source_path, animal_id, shelter_id, kennel_id=None, room_id=None,
                          walk_id=None, is_intake_form=False, file_name=None):
        """Prepare a captured file for the upload queue.

        The processed bytes are written to the spool directory so the queue can
        resend them after a restart.

        Returns:
            dict: Payload accepted by UploadQueueService.enqueue
        """
        processed = self.process_media(source_path, file_name)
        spool_path = self.local_store.write_spool_file(secrets.token_hex(6), processed.file_name, processed.data)

        return {
            'file_path': spool_path,
            'file_name': processed.file_name,
            'content_type': processed.content_type,
            'size_bytes': processed.size_bytes,
            'width': processed.width,
            'height': processed.height,
            'animal_id': animal_id,
            'shelter_id': shelter_id,
            'kennel_id': kennel_id,
            'room_id': room_id,
            'walk_id': walk_id,
            'is_intake_form': is_intake_form,
        }
