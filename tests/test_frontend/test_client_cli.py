"""Tests for the shelter-upload command line interface."""
import re
import pytest
from click.testing import CliRunner

from shelter_app.app import ShelterUploadApp
from shelter_app.cli import cli
from shelter_app.config_manager import ConfigManager


@pytest.fixture
def make_app(tmp_path):
    def factory(storage):
        config = ConfigManager(data_dir=str(tmp_path / 'client'), upload_retry_delay=0, upload_max_retries=2)
        return ShelterUploadApp(config=config, storage=storage)
    return factory


def invoke(app, args):
    return CliRunner().invoke(cli, args, obj=app)


def test_add_without_upload_then_status(make_app, storage, media_file):
    result = invoke(make_app(storage), ['add', str(media_file), '--animal', 'animal_1', '--shelter', 'shelter_1', '--no-upload'])
    assert result.exit_code == 0, result.output
    assert 'Queued 1 file(s)' in result.output
    storage.upload_file.assert_not_called()

    result = invoke(make_app(storage), ['status'])
    assert result.exit_code == 0
    assert 'pending' in result.output
    assert 'pepper.jpg' in result.output


def test_process_uploads_queued_items(make_app, storage, media_file):
    invoke(make_app(storage), ['add', str(media_file), '--animal', 'animal_1', '--shelter', 'shelter_1', '--no-upload'])

    result = invoke(make_app(storage), ['process'])
    assert result.exit_code == 0, result.output
    storage.upload_file.assert_called_once()

    result = invoke(make_app(storage), ['status'])
    assert 'Upload queue is empty' in result.output


def test_failed_upload_then_retry(make_app, failing_storage, storage, media_file):
    result = invoke(make_app(failing_storage), ['add', str(media_file), '--animal', 'animal_1', '--shelter', 'shelter_1'])
    assert result.exit_code == 0, result.output
    assert 'error' in result.output
    assert 'storage unreachable' in result.output

    app = make_app(storage)
    upload_id = re.search(r"upload_[0-9a-f]{24}", result.output).group(0)
    result = invoke(app, ['retry', upload_id])
    assert result.exit_code == 0, result.output
    assert f'Upload {upload_id} completed' in result.output


def test_remove_unknown_upload(make_app, storage):
    result = invoke(make_app(storage), ['remove', 'upload_missing'])
    assert result.exit_code != 0
    assert 'not in the queue' in result.output


def test_intake_upload_stays_queued(make_app, storage, media_file):
    result = invoke(make_app(storage), ['add', str(media_file), '--animal', 'animal_1', '--shelter', 'shelter_1', '--intake'])
    assert result.exit_code == 0, result.output
    assert 'success' in result.output
    assert 'https://cdn.example.org/shelter-media/animal_1/' in result.output


def test_add_corrupted_image(make_app, storage, tmp_path):
    bad = tmp_path / 'bad.jpg'
    bad.write_bytes(b'not an image')
    result = invoke(make_app(storage), ['add', str(bad), '--animal', 'animal_1', '--shelter', 'shelter_1'])
    assert result.exit_code != 0
    assert 'Error' in result.output
