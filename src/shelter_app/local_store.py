"""SQLite persistence for the upload queue so it survives restarts."""
import logging
import os
from contextlib import contextmanager
from pathlib import Path

from appdirs import user_data_dir
from sqlalchemy import create_engine, Column, String, Integer, Float, Boolean, DateTime, Enum, Text
from sqlalchemy.orm import sessionmaker, declarative_base

from shared.enums import UploadStatus
from shared.models import now
from .upload_item import UploadItem

LocalBase = declarative_base()

APP_NAME = 'shelter-buddy'
APP_AUTHOR = 'ShelterBuddy'


def default_data_dir():
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


@contextmanager
def session_scope(session_factory):
    """Provide a transactional scope around a series of operations."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class QueuedUpload(LocalBase):
    __tablename__ = 'upload_queue'
    id = Column(String(48), primary_key=True, nullable=False)
    file_path = Column(Text, nullable=False)
    file_name = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False, default='image/jpeg')
    size_bytes = Column(Integer, nullable=False, default=0)
    width = Column(Integer, nullable=False, default=0)
    height = Column(Integer, nullable=False, default=0)
    animal_id = Column(String(48), nullable=False)
    shelter_id = Column(String(48), nullable=False)
    kennel_id = Column(String(48))
    room_id = Column(String(48))
    walk_id = Column(String(48))
    is_intake_form = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(UploadStatus), nullable=False, default=UploadStatus.PENDING, index=True)
    progress = Column(Float, nullable=False, default=0.0)
    retry_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=now, index=True)
    uploaded_url = Column(Text)
    object_name = Column(Text)
    error = Column(Text)


ITEM_COLUMNS = [column.name for column in QueuedUpload.__table__.columns]


class LocalUploadStore:
    """Durable copy of the upload queue plus the spool directory for processed files."""

    def __init__(self, db_path=None, spool_dir=None, max_retries=3):
        self.logger = logging.getLogger(self.__class__.__name__)
        data_dir = default_data_dir()
        self.db_path = Path(db_path) if db_path else data_dir / 'uploads.db'
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.spool_dir = Path(spool_dir) if spool_dir else self.db_path.parent / 'spool'
        self.spool_dir.mkdir(parents=True, exist_ok=True)
        self.max_retries = max_retries

        self.engine = create_engine(f'sqlite:///{self.db_path}')
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        LocalBase.metadata.create_all(self.engine)
        self.logger.info(f"Local upload store ready at {self.db_path} (spool: {self.spool_dir})")

    def close(self):
        self.engine.dispose()

    @staticmethod
    def _to_item(row):
        return UploadItem.from_dict({name: getattr(row, name) for name in ITEM_COLUMNS})

    def add_uploads(self, items):
        """Insert or replace rows for the given items."""
        with session_scope(self.Session) as session:
            for item in items:
                data = {name: getattr(item, name) for name in ITEM_COLUMNS}
                session.merge(QueuedUpload(**data))
        self.logger.debug(f"Persisted {len(items)} upload(s)")

    def update_upload(self, item_id, **updates):
        """Update selected columns; returns False when the row does not exist."""
        unknown = set(updates) - set(ITEM_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown upload fields: {', '.join(sorted(unknown))}")
        with session_scope(self.Session) as session:
            row = session.get(QueuedUpload, item_id)
            if row is None:
                return False
            for key, value in updates.items():
                setattr(row, key, value)
            return True

    def save_item(self, item):
        """Write every lifecycle field of an item."""
        return self.update_upload(
            item.id,
            status=item.status,
            progress=item.progress,
            retry_count=item.retry_count,
            uploaded_url=item.uploaded_url,
            object_name=item.object_name,
            error=item.error,
        )

    def remove_upload(self, item_id):
        with session_scope(self.Session) as session:
            row = session.get(QueuedUpload, item_id)
            if row is None:
                return False
            session.delete(row)
            return True

    def clear_uploads(self):
        with session_scope(self.Session) as session:
            deleted = session.query(QueuedUpload).delete()
        self.logger.info(f"Cleared {deleted} persisted upload(s)")
        return deleted

    def get_upload(self, item_id):
        with session_scope(self.Session) as session:
            row = session.get(QueuedUpload, item_id)
            return self._to_item(row) if row else None

    def get_all_uploads(self):
        with session_scope(self.Session) as session:
            rows = session.query(QueuedUpload).order_by(QueuedUpload.created_at).all()
            return [self._to_item(row) for row in rows]

    def get_pending_uploads(self):
        """Pending items plus failed items that still have retries left."""
        with session_scope(self.Session) as session:
            pending = session.query(QueuedUpload).filter_by(status=UploadStatus.PENDING).all()
            errors = session.query(QueuedUpload).filter(
                QueuedUpload.status == UploadStatus.ERROR,
                QueuedUpload.retry_count < self.max_retries
            ).all()
            return [self._to_item(row) for row in pending + errors]

    def write_spool_file(self, item_key, file_name, data):
        """Write processed media bytes into the spool directory and return the path."""
        safe_name = os.path.basename(file_name) or 'upload'
        path = self.spool_dir / f"{item_key}_{safe_name}"
        with open(path, 'wb') as f:
            f.write(data)
        return str(path)

    def delete_spool_file(self, file_path):
        """Delete a file if it lives in the spool directory; other paths are left alone."""
        if not file_path:
            return False
        path = Path(file_path).resolve()
        if self.spool_dir.resolve() not in path.parents:
            return False
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
