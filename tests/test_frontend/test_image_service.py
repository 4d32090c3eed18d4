"""Tests for media processing before upload."""
import base64
import io
import pytest
from PIL import Image

from shared.utils import CorruptedImageError
from shelter_app.services.image_service import ImageService


@pytest.fixture
def image_service(local_store):
    return ImageService(local_store)


def test_calculate_dimensions(image_service):
    assert image_service.calculate_dimensions(4096, 3072) == (2048, 1536)
    assert image_service.calculate_dimensions(1000, 800) == (1000, 800)


def test_process_image_downscales_large_photo(image_service, image_bytes):
    processed = image_service.process_image(image_bytes(3000, 1500), 'wide.png')

    assert (processed.width, processed.height) == (2048, 1024)
    assert processed.content_type == 'image/jpeg'
    assert processed.file_name == 'wide.png'
    assert processed.size_bytes == len(processed.data)
    with Image.open(io.BytesIO(processed.data)) as img:
        assert img.format == 'JPEG'
        assert img.size == (2048, 1024)


def test_process_image_keeps_small_photo_size(image_service, media_file):
    processed = image_service.process_image(media_file)
    assert (processed.width, processed.height) == (64, 48)
    assert processed.file_name == 'pepper.jpg'


def test_process_image_preview(image_service, image_bytes):
    processed = image_service.process_image(image_bytes(800, 400), 'a.png')
    assert processed.preview_base64.startswith('data:image/jpeg;base64,')
    thumb = base64.b64decode(processed.preview_base64.split(',', 1)[1])
    with Image.open(io.BytesIO(thumb)) as img:
        assert max(img.size) <= 200


def test_process_image_converts_transparency(image_service, image_bytes):
    processed = image_service.process_image(image_bytes(20, 20, mode='RGBA'), 'logo.png')
    with Image.open(io.BytesIO(processed.data)) as img:
        assert img.mode == 'RGB'


def test_corrupted_image(image_service):
    with pytest.raises(CorruptedImageError):
        image_service.process_image(b'definitely not an image', 'bad.jpg')


def test_missing_file(image_service, tmp_path):
    with pytest.raises(FileNotFoundError):
        image_service.process_image(tmp_path / 'missing.jpg')


def test_process_media_passes_video_through(image_service, tmp_path):
    video = tmp_path / 'walk.mp4'
    video.write_bytes(b'\x00\x00\x00\x18ftypmp42')
    processed = image_service.process_media(video)
    assert processed.data == video.read_bytes()
    assert (processed.width, processed.height) == (0, 0)
    assert processed.content_type == 'video/mp4'


def test_build_upload_item_for_photo(image_service, media_file, local_store):
    payload = image_service.build_upload_item(
        media_file, 'animal_1', 'shelter_1', kennel_id='kennel_1', walk_id='walk_1'
    )

    assert payload['file_name'] == 'pepper.jpg'
    assert payload['content_type'] == 'image/jpeg'
    assert (payload['width'], payload['height']) == (64, 48)
    assert payload['animal_id'] == 'animal_1'
    assert payload['kennel_id'] == 'kennel_1'
    assert payload['walk_id'] == 'walk_1'
    assert payload['is_intake_form'] is False
    assert payload['file_path'].startswith(str(local_store.spool_dir))
    with open(payload['file_path'], 'rb') as f:
        assert len(f.read()) == payload['size_bytes']


def test_build_upload_item_for_video(image_service, tmp_path):
    video = tmp_path / 'zoomies.mov'
    video.write_bytes(b'movie-bytes')
    payload = image_service.build_upload_item(video, 'animal_1', 'shelter_1', is_intake_form=True)

    assert payload['content_type'] == 'video/quicktime'
    assert (payload['width'], payload['height']) == (0, 0)
    assert payload['size_bytes'] == len(b'movie-bytes')
    assert payload['is_intake_form'] is True
