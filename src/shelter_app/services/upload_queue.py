"""Upload queue service: sends queued photos and videos to object storage."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures
from sqlalchemy.exc import SQLAlchemyError
from tenacity import Retrying, stop_after_attempt, wait_fixed, before_sleep_log

from shared.enums import UploadStatus
from shared.utils import split_file_name
from ..upload_item import UploadItem, UploadNotFoundError, InvalidTransitionError
from ..upload_store import UploadQueueStore
from .api_service import MediaRecordError


logger = logging.getLogger(__name__)


def build_object_name(item):
    """Storage path for an item: ``{animal_id}/{upload_id}_{base}.{ext}``."""
    base, ext = split_file_name(item.file_name)
    return f"{item.animal_id}/{item.id}_{base}.{ext}"


def log_notifier(level, message):
    log_func = logger.error if level == 'error' else logger.info
    log_func(f"[notify:{level}] {message}")


class UploadQueueService:
    """Uploads queued items concurrently with bounded retries.

    State lives in an UploadQueueStore (what subscribers see) and, when given, a
    LocalUploadStore (what survives a restart). Items settle in ``success`` or
    ``error``; failed items can be retried by hand.
    """

    def __init__(self, storage=None, store=None, local_store=None, api_service=None, notifier=None,
                 max_retries=3, retry_delay=1.0, max_workers=4, auto_acknowledge=True):
        self.store = store if store is not None else UploadQueueStore()
        self.local_store = local_store
        self._storage = storage
        self.api_service = api_service
        self.notifier = notifier or log_notifier
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.auto_acknowledge = auto_acknowledge

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='upload')
        self._futures = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, **overrides):
        options = {
            'max_retries': config.upload_max_retries,
            'retry_delay': config.upload_retry_delay,
            'max_workers': config.upload_max_workers,
            'auto_acknowledge': config.auto_acknowledge_uploads,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def storage(self):
        if self._storage is None:
            from shared.cloud_storage import get_cloud_storage
            self._storage = get_cloud_storage()
        return self._storage

    def subscribe(self, listener):
        return self.store.subscribe(listener)

    def subscribe_queue(self, listener):
        return self.store.subscribe_queue(listener)

    def items(self):
        return self.store.items()

    def enqueue(self, items, process=True):
        """
        Queue pre-processed media for upload.

        Args:
            items: One payload (dict or UploadItem) or a list of them
            process: Start uploading right away

        Returns:
            list: The new UploadItems, all pending
        """
        if isinstance(items, (dict, UploadItem)):
            items = [items]
        if not items:
            return []

        new_items = self.store.add_to_queue(items)
        if self.local_store:
            self._store_call(self.local_store.add_uploads, new_items)
        logger.info(f"Queued {len(new_items)} item(s) for upload")

        if process:
            for item in new_items:
                self._schedule(item.id)
        return new_items

    def process(self, timeout=None):
        """Upload every pending item and wait for them to settle.

        Returns:
            list: Final state of each processed item that is still queued
        """
        for item in self.store.get_pending_uploads():
            self._schedule(item.id)
        self.wait(timeout)
        settled = []
        for item in self.store.items():
            if item.status in (UploadStatus.SUCCESS, UploadStatus.ERROR):
                settled.append(item)
        return settled

    def wait(self, timeout=None):
        """Block until scheduled uploads finish; returns False on timeout.

        Uploads scheduled while waiting (a retry from a listener) are waited for
        as well.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                futures = [f for f in self._futures.values() if not f.done()]
            if not futures:
                return True
            remaining = None if deadline is None else max(0, deadline - time.monotonic())
            _, not_done = wait_futures(futures, timeout=remaining)
            if not_done:
                return False

    def remove(self, item_id):
        """
        Remove an item from the queue and the local store.

        Raises:
            UploadNotFoundError: Unknown id
            UploadInProgressError: The item is uploading
        """
        item = self.store.remove_from_queue(item_id)
        if self.local_store:
            self._store_call(self.local_store.remove_upload, item_id)
            self.local_store.delete_spool_file(item.file_path)
        logger.info(f"Removed upload {item_id} ({item.status.value})")
        return item

    def acknowledge(self, item_id):
        """Dismiss a successful upload."""
        item = self.store.get(item_id)
        if item.status != UploadStatus.SUCCESS:
            raise InvalidTransitionError(f"Upload {item_id} is {item.status.value}, only successful uploads can be acknowledged")
        return self.remove(item_id)

    def retry(self, item_id):
        """Manually retry a failed item."""
        item = self.store.reset_for_retry(item_id)
        self._persist(item)
        logger.info(f"Retrying upload {item_id}")
        self._schedule(item_id)
        return item

    def restore(self, process=True):
        """Load persisted items into the queue.

        Items that were uploading when the previous run stopped go back to pending.
        """
        if not self.local_store:
            return []

        items = self.local_store.get_all_uploads()
        for item in items:
            if item.status == UploadStatus.UPLOADING:
                item.mark_interrupted()
                self._persist(item)
        self.store.set_items(items)
        logger.info(f"Restored {len(items)} persisted upload(s)")

        if process:
            for item in items:
                if item.status == UploadStatus.PENDING:
                    self._schedule(item.id)
        return self.store.items()

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)
        logger.info("Upload queue service stopped")

    def _schedule(self, item_id):
        with self._lock:
            current = self._futures.get(item_id)
            if current is not None and not current.done():
                if not current.running():
                    # Still queued; it will pick up the pending item
                    return current
                # Running worker may have settled the item already; go after it
                future = self._executor.submit(self._process_after, current, item_id)
            else:
                future = self._executor.submit(self._process_item, item_id)
            self._futures[item_id] = future
        future.add_done_callback(lambda f: self._forget(item_id, f))
        return future

    def _forget(self, item_id, future):
        with self._lock:
            if self._futures.get(item_id) is future:
                del self._futures[item_id]
        if future.exception() is not None:
            logger.error(f"Upload worker for {item_id} crashed: {future.exception()}")

    def _process_after(self, previous, item_id):
        wait_futures([previous])
        return self._process_item(item_id)

    def _process_item(self, item_id):
        """Upload one item: pending -> uploading -> success | error."""
        try:
            item = self.store.update_item_status(item_id, UploadStatus.UPLOADING)
        except UploadNotFoundError:
            logger.debug(f"Upload {item_id} was removed before it started")
            return None
        except InvalidTransitionError:
            # Another worker or a removal got there first
            return None
        self._persist(item)

        object_name = build_object_name(item)
        try:
            uploaded_url = self._upload_with_retries(item, object_name)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            failed = self.store.update_item_status(item_id, UploadStatus.ERROR, error=message)
            self._persist(failed)
            logger.error(f"Upload {item_id} failed after {failed.retry_count} attempt(s): {message}")
            self.notifier('error', 'Upload failed')
            return failed

        done = self.store.update_item_status(
            item_id, UploadStatus.SUCCESS, uploaded_url=uploaded_url, object_name=object_name
        )
        self._persist(done)
        logger.info(f"Upload {item_id} stored at {object_name}")

        if self.api_service is not None:
            try:
                self.api_service.create_media_record(done, object_name)
            except MediaRecordError as e:
                # The stored object is left as is; the item stays successful
                logger.error(f"Media record for upload {item_id} not saved: {e}")
                self.notifier('error', f"Failed to save media record: {e}")
                return done

        self.notifier('success', 'Photos uploaded')
        if self.auto_acknowledge and not done.is_intake_form:
            try:
                self.acknowledge(item_id)
            except UploadNotFoundError:
                logger.debug(f"Upload {item_id} was already dismissed")
        return done

    def _upload_with_retries(self, item, object_name):
        def on_progress(sent, total):
            percent = (sent / total) * 100 if total else 100
            self.store.update_item_progress(item.id, percent)

        retryer = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_fixed(self.retry_delay),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retryer:
            with attempt:
                try:
                    return self.storage.upload_file(
                        item.file_path, object_name,
                        content_type=item.content_type,
                        progress_callback=on_progress,
                    )
                except Exception as e:
                    counted = self.store.record_failed_attempt(item.id)
                    self._persist(counted)
                    logger.warning(f"Upload {item.id} attempt {counted.retry_count}/{self.max_retries} failed: {e}")
                    raise

    def _persist(self, item):
        if self.local_store:
            self._store_call(self.local_store.save_item, item)

    def _store_call(self, func, *args):
        try:
            return func(*args)
        except SQLAlchemyError as e:
            logger.error(f"Local upload store write failed ({func.__name__}): {e}")
            return None
