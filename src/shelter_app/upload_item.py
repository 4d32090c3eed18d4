"""Queued media upload and its lifecycle rules."""
import dataclasses
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from shared.enums import UploadStatus
from shared.models import now
from shared.schemas import UploadItemSnapshot


class UploadQueueError(Exception):
    """Base class for upload queue errors."""
    pass


class InvalidTransitionError(UploadQueueError):
    """Raised when a status change would break the upload lifecycle."""
    pass


class UploadNotFoundError(UploadQueueError, KeyError):
    """Raised when no queued upload has the requested id."""

    def __str__(self):
        return Exception.__str__(self)


class UploadInProgressError(UploadQueueError):
    """Raised when removing an item that is currently uploading."""
    pass


# pending -> uploading -> success | error; a manual retry re-opens error as pending
ALLOWED_TRANSITIONS = {
    UploadStatus.PENDING: {UploadStatus.UPLOADING},
    UploadStatus.UPLOADING: {UploadStatus.SUCCESS, UploadStatus.ERROR},
    UploadStatus.ERROR: {UploadStatus.PENDING},
    UploadStatus.SUCCESS: set(),
}

LIFECYCLE_FIELDS = frozenset({
    'id', 'status', 'progress', 'retry_count', 'created_at',
    'uploaded_url', 'object_name', 'error',
})


def new_upload_id():
    return f"upload_{secrets.token_hex(12)}"


@dataclass
class UploadItem:
    """A photo or video waiting to reach object storage.

    The payload fields describe the processed file and what it belongs to. The
    lifecycle fields are owned by the queue.
    """
    # Payload
    file_path: str
    file_name: str
    animal_id: str
    shelter_id: str
    content_type: str = 'image/jpeg'
    size_bytes: int = 0
    width: int = 0
    height: int = 0
    kennel_id: Optional[str] = None
    room_id: Optional[str] = None
    walk_id: Optional[str] = None
    is_intake_form: bool = False

    # Lifecycle
    id: str = field(default_factory=new_upload_id)
    status: UploadStatus = UploadStatus.PENDING
    progress: float = 0.0
    retry_count: int = 0
    created_at: datetime = field(default_factory=now)
    uploaded_url: Optional[str] = None
    object_name: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload):
        """Build a fresh pending item from payload fields.

        Lifecycle fields in the payload are ignored so every enqueued item starts
        clean.
        """
        if isinstance(payload, UploadItem):
            payload = payload.to_dict()
        data = {k: v for k, v in payload.items() if k not in LIFECYCLE_FIELDS}
        return cls(**data)

    @classmethod
    def from_dict(cls, data):
        """Rebuild an item from its stored form, validating it on the way."""
        snapshot = UploadItemSnapshot.model_validate(data)
        return cls(**snapshot.model_dump())

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data['status'] = self.status.value
        return data

    def copy(self):
        return dataclasses.replace(self)

    @property
    def is_uploading(self):
        return self.status == UploadStatus.UPLOADING

    def transition(self, status, error=None, uploaded_url=None):
        """Move to ``status`` keeping the url/error invariants.

        Raises:
            InvalidTransitionError: For a move outside the lifecycle, a success
                without a url, or an error without a message.
        """
        status = UploadStatus(status)
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Upload {self.id} cannot move from {self.status.value} to {status.value}"
            )
        if status == UploadStatus.SUCCESS and not uploaded_url:
            raise InvalidTransitionError(f"Upload {self.id} succeeded without an uploaded url")
        if status == UploadStatus.ERROR and not error:
            raise InvalidTransitionError(f"Upload {self.id} failed without an error message")

        self.status = status
        self.uploaded_url = uploaded_url if status == UploadStatus.SUCCESS else None
        self.error = error if status == UploadStatus.ERROR else None
        if status == UploadStatus.SUCCESS:
            self.progress = 100.0
        elif status == UploadStatus.PENDING:
            self.progress = 0.0

    def mark_interrupted(self):
        """Return an item that was uploading when the process stopped to pending.

        Partial uploads are not resumed; the file is sent again from the start.
        """
        if self.status == UploadStatus.UPLOADING:
            self.status = UploadStatus.PENDING
            self.progress = 0.0
            self.error = None
            self.uploaded_url = None
