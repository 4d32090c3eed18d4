import enum


class UploadStatus(str, enum.Enum):
    """Lifecycle states of a queued media upload.

    Used by UploadItem and the local upload store.
    """
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class WalkStatus(str, enum.Enum):
    """Walk session status values.

    Used in Walk model to track a walk from scheduling to completion.
    """
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class KennelType(str, enum.Enum):
    STANDARD = "standard"
    ISOLATION = "isolation"
    SENIOR = "senior"
    QUIET = "quiet"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class DifficultyLevel(str, enum.Enum):
    """Handling difficulty of an animal, shown to volunteers before a walk."""
    YELLOW = "Yellow"
    PURPLE = "Purple"
    RED = "Red"


class UserRole(str, enum.Enum):
    """User roles for shelter membership."""
    ADMIN = "admin"
    SUPER_ADMIN = "superAdmin"
    USER = "user"
