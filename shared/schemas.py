"""Pydantic schemas for validation and serialization."""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict

from shared.enums import UploadStatus


ID_PATTERN = r'^[a-z]+_[A-Za-z0-9]+$'


class MediaCreateRequest(BaseModel):
    """Media record created once a file reached object storage."""
    animal_id: str = Field(..., min_length=1, max_length=48)
    shelter_id: str = Field(..., min_length=1, max_length=48)
    walk_id: Optional[str] = Field(None, max_length=48)
    created_by_user_id: str = Field(..., min_length=1, max_length=48)
    file_path: str = Field(..., min_length=1, max_length=1024)
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    size: int = Field(..., ge=0)
    type: str = Field(..., min_length=1, max_length=100)
    default_photo: bool = False
    thumbnail_url: Optional[str] = Field(None, max_length=1000)
    metadata: Optional[Dict[str, Any]] = None

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v):
        v = v.strip()
        if v.startswith('/') or '..' in v.split('/'):
            raise ValueError('file_path must be a relative object name')
        return v

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if '/' not in v:
            raise ValueError('type must be a MIME type such as image/jpeg')
        return v.lower()

    @field_validator('walk_id')
    @classmethod
    def empty_walk_is_none(cls, v):
        return v or None


class MediaResponse(BaseModel):
    id: str
    animal_id: str
    shelter_id: str
    walk_id: Optional[str] = None
    created_by_user_id: str
    is_default: bool = False
    width: int
    height: int
    size_bytes: int
    type: str
    s3_path: str
    thumbnail_url: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MediaListResponse(BaseModel):
    animal_id: str
    count: int
    media: List[MediaResponse] = Field(default_factory=list)


class UploadItemSnapshot(BaseModel):
    """Wire/disk form of a queued upload, validated when restored."""
    id: str = Field(..., pattern=ID_PATTERN)
    file_path: str
    file_name: str
    content_type: str = 'application/octet-stream'
    size_bytes: int = Field(default=0, ge=0)
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    animal_id: str
    shelter_id: str
    kennel_id: Optional[str] = None
    room_id: Optional[str] = None
    walk_id: Optional[str] = None
    is_intake_form: bool = False
    status: UploadStatus = UploadStatus.PENDING
    progress: float = Field(default=0.0, ge=0, le=100)
    retry_count: int = Field(default=0, ge=0)
    created_at: datetime
    uploaded_url: Optional[str] = None
    object_name: Optional[str] = None
    error: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
