"""API service for the backend media endpoints."""
import os
import requests
import time
import logging

from shared.utils import compute_file_hash
from ..upload_item import UploadQueueError


class MediaRecordError(UploadQueueError):
    """Raised when the backend did not store a media record."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class APIService:
    """HTTP client for backend API calls with error handling and retry logic."""

    def __init__(self, base_url='http://localhost:5000', user_id=None, access_token=None,
                 max_retries=3, retry_delay=1.0, timeout=10.0):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.access_token = access_token
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def _get_auth_headers(self):
        headers = {}
        if self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    def _make_request(self, method, path, **kwargs):
        """Make HTTP request, retrying timeouts, rate limits, 5xx and connection errors."""
        url = f"{self.base_url}{path}"
        kwargs.setdefault('timeout', self.timeout)
        kwargs['headers'] = {**kwargs.get('headers', {}), **self._get_auth_headers()}

        last_exception = None
        response = None

        for attempt in range(self.max_retries):
            try:
                response = requests.request(method, url, **kwargs)
                if response.status_code < 500 and response.status_code not in (408, 429):
                    return response
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries}): {response.status_code} {response.reason}")
                    time.sleep(self.retry_delay * (2 ** attempt))
            except requests.exceptions.RequestException as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request exception (attempt {attempt + 1}/{self.max_retries}): {e}")
                    time.sleep(self.retry_delay * (2 ** attempt))
                else:
                    self.logger.error(f"Request failed after {self.max_retries} attempts: {e}")

        if response is not None:
            return response
        raise MediaRecordError(f"Backend unreachable: {last_exception}")

    @staticmethod
    def _error_message(response):
        try:
            return response.json().get('error') or response.reason
        except ValueError:
            return response.reason or f"HTTP {response.status_code}"

    def create_media_record(self, item, object_name, default_photo=False):
        """Store the media record for an uploaded item.

        Returns:
            dict: The created record

        Raises:
            MediaRecordError: The backend rejected the record or could not be reached
        """
        if not self.user_id:
            raise MediaRecordError("No user configured for media records")

        metadata = {'file_name': item.file_name}
        if item.file_path and os.path.exists(item.file_path):
            metadata['sha256'] = compute_file_hash(item.file_path)

        payload = {
            'animal_id': item.animal_id,
            'shelter_id': item.shelter_id,
            'walk_id': item.walk_id,
            'created_by_user_id': self.user_id,
            'file_path': object_name,
            'width': item.width,
            'height': item.height,
            'size': item.size_bytes,
            'type': item.content_type or 'image/png',
            'default_photo': default_photo,
            'metadata': metadata,
        }
        response = self._make_request('POST', '/api/media', json=payload)
        if response.status_code != 201:
            message = self._error_message(response)
            self.logger.error(f"Media record for upload {item.id} rejected ({response.status_code}): {message}")
            raise MediaRecordError(message, status_code=response.status_code)

        record = response.json()
        self.logger.info(f"Created media record {record.get('id')} for upload {item.id}")
        return record

    def delete_media(self, media_id):
        """Delete a media record and its stored object."""
        response = self._make_request('DELETE', f'/api/media/{media_id}')
        if response.status_code not in (200, 204):
            raise MediaRecordError(self._error_message(response), status_code=response.status_code)
        return True

    def list_media(self, animal_id, walk_id=None):
        params = {'walk_id': walk_id} if walk_id else None
        response = self._make_request('GET', f'/api/animals/{animal_id}/media', params=params)
        if response.status_code != 200:
            raise MediaRecordError(self._error_message(response), status_code=response.status_code)
        return response.json()['media']
