"""In-memory upload queue with status-change and queue-change subscribers."""
import logging
import threading
from typing import Callable, List

from shared.enums import UploadStatus
from .upload_item import (
    UploadItem, UploadNotFoundError, UploadInProgressError, InvalidTransitionError
)


StatusChangeListener = Callable[[UploadItem], None]
QueueChangeListener = Callable[[List[UploadItem]], None]


class UploadQueueStore:
    """Ordered list of queued uploads shared by the UI and the upload worker.

    Every mutation happens under a lock. Listeners are called after the lock is
    released, so they may read or change the store:

    - status listeners receive a copy of an item whose status changed;
    - queue listeners receive a snapshot of the whole queue after any change
      (items added, removed, cleared or replaced, status, progress, retries).
    """

    def __init__(self, items=None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.RLock()
        self._queue: List[UploadItem] = list(items or [])
        self._listeners: List[StatusChangeListener] = []
        self._queue_listeners: List[QueueChangeListener] = []

    def __len__(self):
        with self._lock:
            return len(self._queue)

    def items(self) -> List[UploadItem]:
        """Snapshot of the queue in insertion order."""
        with self._lock:
            return [item.copy() for item in self._queue]

    def get(self, item_id) -> UploadItem:
        with self._lock:
            return self._find(item_id).copy()

    def _find(self, item_id):
        for item in self._queue:
            if item.id == item_id:
                return item
        raise UploadNotFoundError(f"Upload {item_id} is not in the queue")

    def _capture(self):
        # Caller holds the lock
        return [item.copy() for item in self._queue], list(self._queue_listeners)

    def add_to_queue(self, payloads) -> List[UploadItem]:
        """Append new pending items built from payloads and return copies of them."""
        new_items = [UploadItem.from_payload(payload) for payload in payloads]
        with self._lock:
            self._queue.extend(new_items)
            snapshot, queue_listeners = self._capture()
        self.logger.debug(f"Added {len(new_items)} item(s) to the upload queue")
        self._notify_queue(queue_listeners, snapshot)
        return [item.copy() for item in new_items]

    def set_items(self, items):
        """Replace the whole queue, e.g. with items restored from disk."""
        with self._lock:
            self._queue = [item.copy() for item in items]
            snapshot, queue_listeners = self._capture()
        self._notify_queue(queue_listeners, snapshot)

    def remove_from_queue(self, item_id) -> UploadItem:
        """Remove an item unless it is uploading.

        Raises:
            UploadNotFoundError: Unknown id
            UploadInProgressError: The item is uploading
        """
        with self._lock:
            item = self._find(item_id)
            if item.is_uploading:
                raise UploadInProgressError(f"Upload {item_id} is in progress and cannot be removed")
            self._queue.remove(item)
            snapshot, queue_listeners = self._capture()
        self._notify_queue(queue_listeners, snapshot)
        return item

    def clear_queue(self, include_uploading=False):
        """Drop every item; uploading items stay unless include_uploading is set."""
        with self._lock:
            if include_uploading:
                self._queue = []
            else:
                self._queue = [item for item in self._queue if item.is_uploading]
            snapshot, queue_listeners = self._capture()
        self._notify_queue(queue_listeners, snapshot)

    def get_pending_uploads(self) -> List[UploadItem]:
        with self._lock:
            return [item.copy() for item in self._queue if item.status == UploadStatus.PENDING]

    def update_item_status(self, item_id, status, error=None, uploaded_url=None, **fields) -> UploadItem:
        """Apply a lifecycle transition and notify listeners.

        Extra keyword fields (object_name, retry_count) are set on the item in
        the same step.
        """
        with self._lock:
            item = self._find(item_id)
            item.transition(status, error=error, uploaded_url=uploaded_url)
            for key, value in fields.items():
                setattr(item, key, value)
            updated = item.copy()
            listeners = list(self._listeners)
            snapshot, queue_listeners = self._capture()

        self._notify(listeners, updated)
        self._notify_queue(queue_listeners, snapshot)
        return updated

    def reset_for_retry(self, item_id) -> UploadItem:
        """Re-open a failed item as pending with a fresh retry budget."""
        with self._lock:
            item = self._find(item_id)
            if item.status != UploadStatus.ERROR:
                raise InvalidTransitionError(f"Only failed uploads can be retried, {item_id} is {item.status.value}")
            item.transition(UploadStatus.PENDING)
            item.retry_count = 0
            updated = item.copy()
            listeners = list(self._listeners)
            snapshot, queue_listeners = self._capture()

        self._notify(listeners, updated)
        self._notify_queue(queue_listeners, snapshot)
        return updated

    def record_failed_attempt(self, item_id) -> UploadItem:
        """Count a failed attempt on an uploading item without settling it."""
        with self._lock:
            item = self._find(item_id)
            item.retry_count += 1
            item.progress = 0.0
            counted = item.copy()
            snapshot, queue_listeners = self._capture()
        self._notify_queue(queue_listeners, snapshot)
        return counted

    def update_item_progress(self, item_id, progress) -> UploadItem:
        with self._lock:
            item = self._find(item_id)
            item.progress = max(0.0, min(100.0, float(progress)))
            updated = item.copy()
            snapshot, queue_listeners = self._capture()
        self._notify_queue(queue_listeners, snapshot)
        return updated

    def subscribe(self, listener: StatusChangeListener) -> Callable[[], None]:
        """Register a status-change listener; returns a function that unsubscribes it."""
        return self._add_listener(self._listeners, listener)

    def subscribe_queue(self, listener: QueueChangeListener) -> Callable[[], None]:
        """Register a listener for queue snapshots; returns a function that unsubscribes it."""
        return self._add_listener(self._queue_listeners, listener)

    def _add_listener(self, registry, listener):
        with self._lock:
            registry.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in registry:
                    registry.remove(listener)

        return unsubscribe

    def _notify(self, listeners, item):
        for listener in listeners:
            try:
                listener(item)
            except Exception as e:
                self.logger.error(f"Status listener failed for upload {item.id}: {e}", exc_info=True)

    def _notify_queue(self, listeners, snapshot):
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(f"Queue listener failed: {e}", exc_info=True)
