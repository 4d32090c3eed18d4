"""Shared utility functions for Shelter Buddy.

This module contains image and file helpers used by both the backend API and the
client-side upload queue.
"""

import hashlib
import logging
import mimetypes
from functools import lru_cache, wraps
from PIL import Image, ImageOps, UnidentifiedImageError
import io

logger = logging.getLogger(__name__)


class CorruptedImageError(Exception):
    """Raised when image data is corrupted and cannot be processed."""
    pass


def handle_image_errors(func):
    """Turn Pillow decoding failures into CorruptedImageError.

    Missing files and other OS errors propagate unchanged. Pass image_path or
    image_data as keywords so the log line can name the source.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        def raise_corrupted(msg, exc):
            source = kwargs.get('image_path') or f"{len(kwargs.get('image_data') or b'')} bytes of image data"
            logger.error(f"{msg} - {source}: {exc}", exc_info=True)
            raise CorruptedImageError(f"{msg}: {exc}") from exc

        try:
            return func(*args, **kwargs)
        except UnidentifiedImageError as e:
            raise_corrupted("Corrupted or unsupported image format", e)
        except FileNotFoundError:
            raise
        except OSError as e:
            if "cannot identify image file" in str(e).lower() or "truncated" in str(e).lower():
                raise_corrupted("Corrupted image file", e)
            raise
        except ValueError as e:
            raise_corrupted("Error processing image", e)

    return wrapper


# Hash algorithm used for media integrity checks
MEDIA_HASH_ALGO = 'sha256'

# Upload limits for processed images
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048
JPEG_QUALITY = 80


def compute_file_hash(data_or_path):
    """Compute SHA-256 of raw bytes, a file path or a file-like object.

    Returns:
        str: Hexadecimal hash string (64 characters)
    """
    hasher = hashlib.new(MEDIA_HASH_ALGO)

    if isinstance(data_or_path, str):
        with open(data_or_path, 'rb') as f:
            while chunk := f.read(8192):
                hasher.update(chunk)
    elif isinstance(data_or_path, bytes):
        hasher.update(data_or_path)
    elif hasattr(data_or_path, 'read'):
        while chunk := data_or_path.read(8192):
            hasher.update(chunk)
    else:
        raise TypeError(f"compute_file_hash expected bytes, str (path), or file-like object, got {type(data_or_path).__name__}")

    return hasher.hexdigest()


def guess_content_type(file_name, default='application/octet-stream'):
    """Guess a MIME type from a file name."""
    content_type, _ = mimetypes.guess_type(file_name or '')
    return content_type or default


def is_video(content_type):
    return bool(content_type) and content_type.startswith('video/')


def split_file_name(file_name, default_ext='png'):
    """Split ``name.ext`` into ``(base, ext)``.

    Mirrors how object names are built for uploads: everything before the first
    dot is the base name, everything after the last dot is the extension.
    """
    if not file_name:
        return 'unknown', default_ext
    base = file_name.split('.')[0] or 'unknown'
    ext = file_name.rsplit('.', 1)[1] if '.' in file_name else default_ext
    return base, ext or default_ext


@lru_cache(maxsize=128)
def calculate_dimensions(width, height, max_width=MAX_IMAGE_WIDTH, max_height=MAX_IMAGE_HEIGHT):
    """Scale (width, height) down to fit within the bounds, keeping aspect ratio.

    Images already inside the bounds are returned unchanged; nothing is upscaled.

    Returns:
        tuple: (width, height)
    """
    if width <= max_width and height <= max_height:
        return (width, height)

    ratio = min(max_width / width, max_height / height)
    return (round(width * ratio), round(height * ratio))


def _open_image(image_data, image_path):
    if image_path:
        return Image.open(image_path)
    return Image.open(io.BytesIO(image_data))


@handle_image_errors
def resize_image(image_data=None, image_path=None, max_width=MAX_IMAGE_WIDTH,
                 max_height=MAX_IMAGE_HEIGHT, quality=JPEG_QUALITY):
    """Fit an image inside max_width x max_height and re-encode it as JPEG.

    Returns:
        tuple: (jpeg_bytes, width, height)

    Raises:
        TypeError: Neither image_data nor image_path was given.
        CorruptedImageError: The image cannot be decoded.
    """
    if not image_data and not image_path:
        raise TypeError("resize_image requires image_data or image_path")

    img = _open_image(image_data, image_path)
    # Camera photos carry their orientation in EXIF
    img = ImageOps.exif_transpose(img)

    width, height = calculate_dimensions(img.width, img.height, max_width, max_height)
    if (width, height) != (img.width, img.height):
        img = img.resize((width, height), Image.Resampling.LANCZOS)
    if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')

    buffer = io.BytesIO()
    img.save(buffer, format='JPEG', quality=quality, optimize=True)
    return buffer.getvalue(), width, height


@handle_image_errors
def generate_thumbnail(image_data=None, image_path=None, max_size=200):
    """Small preview of an image, at most max_size pixels on its longest side.

    PNG and WEBP keep their format (and transparency); anything else becomes JPEG.
    Returns None when called without input.
    """
    if not image_data and not image_path:
        logger.warning("generate_thumbnail called without image_data or image_path")
        return None

    img = _open_image(image_data, image_path)
    img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    save_format = img.format if img.format in ('PNG', 'WEBP') else 'JPEG'
    if save_format == 'JPEG' and img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')

    buffer = io.BytesIO()
    img.save(buffer, format=save_format, quality=85)
    return buffer.getvalue()
