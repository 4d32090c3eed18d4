"""Tests for backend CLI commands."""
from backend.models import db, AnimalMedia, Animal


def test_init_db(runner):
    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Initialized the database.' in result.output


def test_init_db_drop(runner):
    result = runner.invoke(args=['init-db', '--drop'])
    assert result.exit_code == 0


def test_seed_demo(runner, app):
    result = runner.invoke(args=['seed-demo'])
    assert result.exit_code == 0
    assert 'animal=animal_' in result.output
    with app.app_context():
        assert Animal.query.count() == 1


def test_list_media(runner, app, shelter_data):
    with app.app_context():
        db.session.add(AnimalMedia(
            animal_id=shelter_data['animal_id'],
            shelter_id=shelter_data['shelter_id'],
            created_by_user_id=shelter_data['user_id'],
            width=10, height=20, size_bytes=300, type='image/jpeg',
            s3_path='animal/pepper.jpg', is_default=True,
        ))
        db.session.commit()

    result = runner.invoke(args=['list-media', shelter_data['animal_id']])
    assert result.exit_code == 0
    assert 'animal/pepper.jpg (default)' in result.output
    assert '10x20' in result.output


def test_list_media_empty(runner, shelter_data):
    result = runner.invoke(args=['list-media', shelter_data['animal_id'], '--walk', shelter_data['walk_id']])
    assert result.exit_code == 0
    assert 'No media for' in result.output
