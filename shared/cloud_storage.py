"""Remote object storage client using Apache Libcloud."""

import logging
import os
from pathlib import Path
from threading import Lock
from libcloud.storage.types import Provider, ContainerDoesNotExistError, ObjectDoesNotExistError
from libcloud.storage.providers import get_driver
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
    after_log
)


logger = logging.getLogger(__name__)

PROVIDER_MAP = {
    's3': Provider.S3,
    'gcs': Provider.GOOGLE_STORAGE,
    'azure': Provider.AZURE_BLOBS,
    'minio': Provider.MINIO,
}

CHUNK_SIZE = 6 * 1024 * 1024


class StorageConfigurationError(ValueError):
    """Raised when the storage client cannot be configured."""
    pass


class CloudStorageService:
    """Upload, locate and delete media objects in a single bucket."""

    def __init__(self, provider_name=None, access_key=None, secret_key=None, bucket_name=None,
                 region=None, public_base_url=None, endpoint_host=None, driver=None):
        """Initialize from arguments, falling back to CLOUD_STORAGE_* environment variables."""
        self.provider_name = provider_name or os.getenv('CLOUD_STORAGE_PROVIDER', 's3')
        self.access_key = access_key or os.getenv('CLOUD_STORAGE_ACCESS_KEY')
        self.secret_key = secret_key or os.getenv('CLOUD_STORAGE_SECRET_KEY')
        self.bucket_name = bucket_name or os.getenv('CLOUD_STORAGE_BUCKET')
        self.region = region or os.getenv('CLOUD_STORAGE_REGION', 'us-east-1')
        self.endpoint_host = endpoint_host or os.getenv('CLOUD_STORAGE_ENDPOINT')
        self.public_base_url = (public_base_url or os.getenv('CLOUD_STORAGE_PUBLIC_URL', '')).rstrip('/')

        if not all([self.access_key, self.secret_key, self.bucket_name]):
            raise StorageConfigurationError("Cloud storage configuration incomplete. Check environment variables.")

        self.driver = driver or self._get_driver()
        self.container = self._get_container()

        logger.info(f"Cloud storage initialized with provider: {self.provider_name}, bucket: {self.bucket_name}")

    def _get_driver(self):
        """Get the appropriate libcloud driver based on provider."""
        if self.provider_name not in PROVIDER_MAP:
            raise StorageConfigurationError(f"Unsupported provider: {self.provider_name}")

        kwargs = {
            'key': self.access_key,
            'secret': self.secret_key,
        }

        if self.provider_name == 's3':
            kwargs['region'] = self.region
        if self.endpoint_host and self.provider_name in ('s3', 'minio'):
            kwargs['host'] = self.endpoint_host

        return get_driver(PROVIDER_MAP[self.provider_name])(**kwargs)

    def _get_container(self):
        """Get or create the storage container/bucket."""
        try:
            return self.driver.get_container(container_name=self.bucket_name)
        except ContainerDoesNotExistError:
            logger.info(f"Creating container: {self.bucket_name}")
            return self.driver.create_container(container_name=self.bucket_name)

    def public_url_for(self, object_name, obj=None):
        """Public URL of an object.

        A configured CLOUD_STORAGE_PUBLIC_URL wins; otherwise the driver's CDN
        URL, then the object's own URL.
        """
        if self.public_base_url:
            return f"{self.public_base_url}/{self.bucket_name}/{object_name}"
        if obj is not None:
            try:
                return self.driver.get_object_cdn_url(obj)
            except NotImplementedError:
                pass
            url = getattr(obj, 'public_url', None) or (obj.extra or {}).get('url')
            if url:
                return url
        raise RuntimeError(f"No public URL available for {object_name}")

    def upload_file(self, file_path, object_name, content_type=None, progress_callback=None):
        """
        Stream a local file to the bucket.

        Args:
            file_path: Local path of the processed media file
            object_name: Destination object name
            content_type: MIME type stored with the object
            progress_callback: Optional callable(bytes_sent, bytes_total)

        Returns:
            str: Public URL of the uploaded object

        Raises:
            FileNotFoundError: If the local file is missing
            Exception: Any driver error, unchanged
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Media file not found: {file_path}")

        total = path.stat().st_size

        def file_chunk_iterator():
            sent = 0
            with open(path, 'rb') as f:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    sent += len(chunk)
                    yield chunk
                    if progress_callback:
                        progress_callback(sent, total)

        extra = {'content_type': content_type or 'application/octet-stream',
                 'meta_data': {'cache-control': '3600'}}

        logger.info(f"Uploading {file_path} to {object_name} ({total} bytes)")
        obj = self.driver.upload_object_via_stream(
            iterator=file_chunk_iterator(),
            container=self.container,
            object_name=object_name,
            extra=extra
        )

        return self.public_url_for(object_name, obj)

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=4, max=300),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.INFO),
        reraise=True
    )
    def delete_object(self, object_name):
        """Delete an object. Returns False when it was already gone."""
        try:
            obj = self.driver.get_object(self.container.name, object_name)
        except ObjectDoesNotExistError:
            logger.warning(f"Object already deleted: {object_name}")
            return False
        self.driver.delete_object(obj)
        logger.info(f"Deleted object: {object_name}")
        return True

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=4, max=300),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.INFO),
        reraise=True
    )
    def get_object_url(self, object_name):
        """Get public URL for an existing object."""
        obj = self.driver.get_object(self.container.name, object_name)
        return self.public_url_for(object_name, obj)


# Global instance
_cloud_storage = None
_cloud_storage_lock = Lock()


def get_cloud_storage():
    """Get or create cloud storage service instance (thread-safe)."""
    global _cloud_storage
    if _cloud_storage is None:
        with _cloud_storage_lock:
            if _cloud_storage is None:
                try:
                    _cloud_storage = CloudStorageService()
                except Exception as e:
                    logger.error(f"Failed to initialize cloud storage: {e}")
                    raise
    return _cloud_storage


def reset_cloud_storage():
    """Drop the cached instance (used after configuration changes and in tests)."""
    global _cloud_storage
    with _cloud_storage_lock:
        _cloud_storage = None
