"""Pytest configuration and fixtures for shelter media tests."""
import io
import pytest
import tempfile
import os
from unittest.mock import Mock
from PIL import Image

from backend.app import create_app
from backend.models import db, User, Shelter, Animal, Walk
from shared.enums import Gender, DifficultyLevel


@pytest.fixture
def app():
    """Create and configure a test app instance."""
    db_fd, db_path = tempfile.mkstemp()

    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CLOUD_STORAGE_PUBLIC_URL': 'https://cdn.example.org',
        'CLOUD_STORAGE_BUCKET': 'shelter-media',
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def shelter_data(app):
    """A user, shelter, animal and walk; returns their ids."""
    with app.app_context():
        user = User(email='walker@example.org', first_name='Sam')
        db.session.add(user)
        db.session.flush()
        shelter = Shelter(name='Northside Shelter', created_by_user_id=user.id)
        db.session.add(shelter)
        db.session.flush()
        animal = Animal(
            name='Pepper',
            gender=Gender.FEMALE,
            difficulty_level=DifficultyLevel.YELLOW,
            shelter_id=shelter.id,
            created_by_user_id=user.id,
        )
        db.session.add(animal)
        db.session.flush()
        walk = Walk(animal_id=animal.id, shelter_id=shelter.id, user_id=user.id)
        db.session.add(walk)
        db.session.commit()
        return {
            'user_id': user.id,
            'shelter_id': shelter.id,
            'animal_id': animal.id,
            'walk_id': walk.id,
        }


@pytest.fixture
def local_store(tmp_path):
    """A LocalUploadStore backed by a temporary SQLite file."""
    from shelter_app.local_store import LocalUploadStore

    store = LocalUploadStore(db_path=tmp_path / 'uploads.db', spool_dir=tmp_path / 'spool')
    yield store
    store.close()


def make_image_bytes(width, height, fmt='PNG', mode='RGB'):
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 120, 40) if mode == 'RGB' else None).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    """Factory for encoded test images."""
    return make_image_bytes


@pytest.fixture
def media_file(tmp_path):
    """A small JPEG on disk."""
    path = tmp_path / 'pepper.jpg'
    path.write_bytes(make_image_bytes(64, 48, fmt='JPEG'))
    return path


@pytest.fixture
def storage():
    """A storage client whose uploads succeed and report full progress."""
    storage = Mock()

    def upload_file(file_path, object_name, content_type=None, progress_callback=None):
        if progress_callback:
            progress_callback(10, 10)
        return f"https://cdn.example.org/shelter-media/{object_name}"

    storage.upload_file.side_effect = upload_file
    return storage


@pytest.fixture
def failing_storage():
    """A storage client whose uploads always fail."""
    storage = Mock()
    storage.upload_file.side_effect = ConnectionError('storage unreachable')
    return storage
