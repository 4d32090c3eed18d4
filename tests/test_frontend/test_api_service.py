"""Tests for the media API client."""
import hashlib
import pytest
import requests
from unittest.mock import Mock, patch

from shelter_app.services.api_service import APIService, MediaRecordError
from shelter_app.upload_item import UploadItem


def make_response(status_code, json_data=None, reason='OK'):
    response = Mock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = json_data if json_data is not None else {}
    return response


@pytest.fixture
def api():
    return APIService('http://api.test/', user_id='user_1', access_token='tok', retry_delay=0)


@pytest.fixture
def item():
    return UploadItem.from_payload({
        'file_path': '/tmp/spool/a.jpg',
        'file_name': 'a.jpg',
        'animal_id': 'animal_1',
        'shelter_id': 'shelter_1',
        'walk_id': 'walk_1',
        'width': 640,
        'height': 480,
        'size_bytes': 2048,
    })


@patch('shelter_app.services.api_service.requests.request')
def test_create_media_record(mock_request, api, item):
    mock_request.return_value = make_response(201, {'id': 'media_1'})

    record = api.create_media_record(item, 'animal_1/upload_x_a.jpg')

    assert record == {'id': 'media_1'}
    method, url = mock_request.call_args[0]
    kwargs = mock_request.call_args[1]
    assert (method, url) == ('POST', 'http://api.test/api/media')
    assert kwargs['headers']['Authorization'] == 'Bearer tok'
    assert kwargs['json'] == {
        'animal_id': 'animal_1',
        'shelter_id': 'shelter_1',
        'walk_id': 'walk_1',
        'created_by_user_id': 'user_1',
        'file_path': 'animal_1/upload_x_a.jpg',
        'width': 640,
        'height': 480,
        'size': 2048,
        'type': 'image/jpeg',
        'default_photo': False,
        'metadata': {'file_name': 'a.jpg'},
    }


@patch('shelter_app.services.api_service.requests.request')
def test_create_media_record_rejected(mock_request, api, item):
    mock_request.return_value = make_response(404, {'error': 'Animal not found'}, reason='NOT FOUND')

    with pytest.raises(MediaRecordError) as exc_info:
        api.create_media_record(item, 'animal_1/a.jpg')
    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == 'Animal not found'
    assert mock_request.call_count == 1


def test_create_media_record_needs_user(item):
    api = APIService('http://api.test', user_id=None)
    with pytest.raises(MediaRecordError):
        api.create_media_record(item, 'animal_1/a.jpg')


@patch('shelter_app.services.api_service.time.sleep')
@patch('shelter_app.services.api_service.requests.request')
def test_server_errors_are_retried(mock_request, mock_sleep, api, item):
    mock_request.side_effect = [
        make_response(503, reason='Service Unavailable'),
        make_response(201, {'id': 'media_2'}),
    ]
    assert api.create_media_record(item, 'animal_1/a.jpg')['id'] == 'media_2'
    assert mock_request.call_count == 2


@patch('shelter_app.services.api_service.time.sleep')
@patch('shelter_app.services.api_service.requests.request')
def test_unreachable_backend(mock_request, mock_sleep, api, item):
    mock_request.side_effect = requests.exceptions.ConnectionError('refused')
    with pytest.raises(MediaRecordError, match='Backend unreachable'):
        api.create_media_record(item, 'animal_1/a.jpg')
    assert mock_request.call_count == 3


@patch('shelter_app.services.api_service.requests.request')
def test_delete_media(mock_request, api):
    mock_request.return_value = make_response(200, {'message': 'Media deleted'})
    assert api.delete_media('media_1') is True
    assert mock_request.call_args[0] == ('DELETE', 'http://api.test/api/media/media_1')


@patch('shelter_app.services.api_service.requests.request')
def test_delete_media_storage_failure(mock_request, api):
    mock_request.return_value = make_response(500, {'error': 'Failed to delete media from storage'})
    with patch('shelter_app.services.api_service.time.sleep'):
        with pytest.raises(MediaRecordError) as exc_info:
            api.delete_media('media_1')
    assert exc_info.value.status_code == 500


@patch('shelter_app.services.api_service.requests.request')
def test_list_media(mock_request, api):
    mock_request.return_value = make_response(200, {'animal_id': 'animal_1', 'count': 1, 'media': [{'id': 'media_1'}]})
    assert api.list_media('animal_1', walk_id='walk_1') == [{'id': 'media_1'}]
    assert mock_request.call_args[1]['params'] == {'walk_id': 'walk_1'}


@patch('shelter_app.services.api_service.requests.request')
def test_media_record_carries_file_hash(mock_request, api, item, tmp_path):
    spooled = tmp_path / 'a.jpg'
    spooled.write_bytes(b'jpeg-bytes')
    item.file_path = str(spooled)
    mock_request.return_value = make_response(201, {'id': 'media_3'})

    api.create_media_record(item, 'animal_1/a.jpg')
    metadata = mock_request.call_args[1]['json']['metadata']
    assert metadata['sha256'] == hashlib.sha256(b'jpeg-bytes').hexdigest()
