"""Shelter client - wires configuration, storage and the upload queue together."""
import logging
from pathlib import Path

from .config_manager import ConfigManager
from .local_store import LocalUploadStore, default_data_dir
from .logging_config import setup_logging
from .upload_store import UploadQueueStore
from .services.api_service import APIService
from .services.image_service import ImageService
from .services.upload_queue import UploadQueueService


class ShelterUploadApp:
    """Owns the services behind the media upload flow."""

    def __init__(self, config=None, storage=None, notifier=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config or ConfigManager()
        self._storage = storage
        self._notifier = notifier
        self.started = False

    def startup(self, restore=True, process=True):
        self.logger.info("Starting shelter upload client")

        data_dir = Path(self.config.data_dir) if self.config.data_dir else default_data_dir()
        self.local_store = LocalUploadStore(
            db_path=self.config.db_path or data_dir / 'uploads.db',
            spool_dir=self.config.spool_dir or data_dir / 'spool',
            max_retries=self.config.upload_max_retries,
        )
        self.image_service = ImageService(
            self.local_store,
            max_width=self.config.image_max_width,
            max_height=self.config.image_max_height,
            quality=self.config.image_compression_quality,
            thumbnail_max_size=self.config.thumbnail_max_size,
        )
        self.api_service = APIService(
            self.config.api_base_url,
            user_id=self.config.user_id or None,
            access_token=self.config.access_token or None,
            max_retries=self.config.api_retry_attempts,
            timeout=self.config.api_timeout,
        )
        if not self.config.user_id:
            self.logger.warning("SHELTER_USER_ID is not set; uploads will not create media records")
        self.upload_queue = UploadQueueService.from_config(
            self.config,
            storage=self._storage,
            store=UploadQueueStore(),
            local_store=self.local_store,
            api_service=self.api_service if self.config.user_id else None,
            notifier=self._notifier,
        )
        self.logger.info(f"Configuration loaded: API URL={self.config.api_base_url}")

        if restore:
            self.upload_queue.restore(process=process)
        self.started = True
        return self

    def add_media(self, paths, animal_id, shelter_id, kennel_id=None, room_id=None, walk_id=None,
                  is_intake_form=False, process=True):
        """Process captured files and queue them for upload."""
        payloads = [
            self.image_service.build_upload_item(
                path, animal_id, shelter_id,
                kennel_id=kennel_id, room_id=room_id, walk_id=walk_id,
                is_intake_form=is_intake_form,
            )
            for path in paths
        ]
        return self.upload_queue.enqueue(payloads, process=process)

    def shutdown(self):
        if not self.started:
            return
        self.upload_queue.shutdown(wait=True)
        self.local_store.close()
        self.started = False


def main(argv=None):
    """Entry point for the ``shelter-upload`` command."""
    from .cli import cli
    setup_logging()
    return cli.main(args=argv, prog_name='shelter-upload')
