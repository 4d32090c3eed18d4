import secrets
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, Text, DateTime, ForeignKey, Index, text, Enum, CheckConstraint, JSON
from sqlalchemy.orm import relationship, declarative_base
from shared.enums import WalkStatus, KennelType, Gender, DifficultyLevel, UserRole

Base = declarative_base()

# All timestamps are stored in UTC. Shelters span time zones, so the
# presentation layer converts to local time.
APP_TIMEZONE = timezone.utc


def now():
    """Return current datetime in application timezone (UTC, timezone-aware)."""
    return datetime.now(APP_TIMEZONE)


def create_id(prefix):
    """Generate a prefixed identifier such as ``animal_3f9a0c1e2b7d4a58``.

    Ids are at most 48 characters so they fit every varchar(48) key column.
    """
    return f"{prefix}_{secrets.token_hex(12)}"


def _id_column(prefix):
    return Column(String(48), primary_key=True, nullable=False, default=lambda: create_id(prefix))


class TimestampMixin:
    """Mixin providing created/updated timestamps."""

    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)


class User(Base, TimestampMixin):
    __tablename__ = 'users'
    id = _id_column('user')
    email = Column(String(254), unique=True, nullable=False)
    first_name = Column(String(100), server_default="")
    last_name = Column(String(100), server_default="")
    avatar_url = Column(Text)
    online = Column(Boolean, default=False, server_default='0', nullable=False)
    last_logged_in_at = Column(DateTime)


class Shelter(Base, TimestampMixin):
    __tablename__ = 'shelters'
    id = _id_column('shelter')
    name = Column(String(200), nullable=False)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    theme_config = Column(JSON, default=lambda: {
        'colors': {'accent': '220 90% 75%', 'primary': '220 90% 45%', 'secondary': '220 20% 92%'}
    })
    rooms = relationship('KennelRoom', backref='shelter', lazy='select', cascade="all, delete-orphan")
    animals = relationship('Animal', backref='shelter', lazy='select', cascade="all, delete-orphan")


class ShelterMember(Base, TimestampMixin):
    __tablename__ = 'shelter_members'
    id = _id_column('member')
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=False, server_default=text("'user'"))


class KennelRoom(Base, TimestampMixin):
    __tablename__ = 'kennel_rooms'
    id = _id_column('room')
    name = Column(String(200), nullable=False)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False, index=True)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    grid_x = Column(Integer, default=0, server_default="0", nullable=False)
    grid_y = Column(Integer, default=0, server_default="0", nullable=False)
    kennels = relationship('Kennel', backref='room', lazy='select', cascade="all, delete-orphan")


class Kennel(Base, TimestampMixin):
    __tablename__ = 'kennels'
    id = _id_column('kennel')
    name = Column(String(200), nullable=False)
    room_id = Column(String(48), ForeignKey('kennel_rooms.id', ondelete='CASCADE'), nullable=False, index=True)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False, index=True)
    grid_x = Column(Integer, default=0, server_default="0", nullable=False)
    grid_y = Column(Integer, default=0, server_default="0", nullable=False)
    type = Column(Enum(KennelType), default=KennelType.STANDARD, nullable=False, server_default=text("'standard'"))
    last_cleaned_at = Column(DateTime)
    occupants = relationship('KennelOccupant', backref='kennel', lazy='select', cascade="all, delete-orphan")


class Animal(Base, TimestampMixin):
    __tablename__ = 'animals'
    id = _id_column('animal')
    name = Column(String(200), nullable=False)
    external_id = Column(String(100))
    breed = Column(String(200))
    gender = Column(Enum(Gender), nullable=False)
    difficulty_level = Column(Enum(DifficultyLevel), nullable=False)
    is_fido = Column(Boolean, default=False, server_default='0', nullable=False)
    birth_date = Column(DateTime)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False, index=True)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    media = relationship('AnimalMedia', backref='animal', lazy='select', cascade="all, delete-orphan")
    walks = relationship('Walk', backref='animal', lazy='select', cascade="all, delete-orphan")


class KennelOccupant(Base, TimestampMixin):
    """Assignment of an animal to a kennel for a time span (open while ended_at is NULL)."""
    __tablename__ = 'kennel_occupants'
    id = _id_column('occupant')
    animal_id = Column(String(48), ForeignKey('animals.id', ondelete='CASCADE'), nullable=False, index=True)
    kennel_id = Column(String(48), ForeignKey('kennels.id', ondelete='CASCADE'), nullable=False, index=True)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    is_out_of_kennel = Column(Boolean, default=False, server_default='0', nullable=False)
    started_at = Column(DateTime, nullable=False, default=now)
    ended_at = Column(DateTime)


class Walk(Base, TimestampMixin):
    __tablename__ = 'walks'
    id = _id_column('walk')
    animal_id = Column(String(48), ForeignKey('animals.id', ondelete='CASCADE'), nullable=False, index=True)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = Column(Enum(WalkStatus), default=WalkStatus.NOT_STARTED, nullable=False, server_default=text("'not_started'"))
    started_at = Column(DateTime, nullable=False, default=now)
    ended_at = Column(DateTime)
    walk_difficulty_level = Column(Integer, default=0, server_default="0", nullable=False)
    media = relationship('AnimalMedia', backref='walk', lazy='select')


class AnimalMedia(Base, TimestampMixin):
    """Metadata for a photo or video stored in remote object storage."""
    __tablename__ = 'animal_media'
    id = _id_column('media')
    animal_id = Column(String(48), ForeignKey('animals.id', ondelete='CASCADE'), nullable=False)
    shelter_id = Column(String(48), ForeignKey('shelters.id', ondelete='CASCADE'), nullable=False)
    walk_id = Column(String(48), ForeignKey('walks.id', ondelete='CASCADE'), nullable=True)
    created_by_user_id = Column(String(48), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    is_default = Column(Boolean, default=False, server_default='0', nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    type = Column(String(100), nullable=False)
    s3_path = Column(Text, nullable=False)
    thumbnail_url = Column(Text)
    # 'metadata' is reserved on declarative classes
    media_metadata = Column('metadata', JSON)

    __table_args__ = (
        CheckConstraint('width >= 0 AND height >= 0', name='chk_media_dimensions'),
        CheckConstraint('size_bytes >= 0', name='chk_media_size'),
    )

Index('idx_media_animal_created', AnimalMedia.animal_id, AnimalMedia.created_at)
Index('idx_media_walk_id', AnimalMedia.walk_id)
Index('idx_media_shelter_id', AnimalMedia.shelter_id)
