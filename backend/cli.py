import click
import logging
from flask.cli import with_appcontext
from .models import db, User, Shelter, Animal, AnimalMedia
from shared.enums import Gender, DifficultyLevel

logger = logging.getLogger(__name__)


@click.command('init-db')
@click.option('--drop', is_flag=True, help='Drop existing tables first.')
@with_appcontext
def init_db_command(drop):
    """Create the database tables."""
    logger.info("Starting database initialization")
    if drop:
        logger.warning("Dropping all tables")
        db.drop_all()
    db.create_all()
    logger.info("Database tables created successfully")
    click.echo('Initialized the database.')


@click.command('seed-demo')
@click.option('--email', default='volunteer@example.org', show_default=True)
@with_appcontext
def seed_demo_command(email):
    """Create a user, shelter and animal to upload media against."""
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, first_name='Demo', last_name='Volunteer')
        db.session.add(user)
        db.session.flush()

    shelter = Shelter(name='Demo Shelter', created_by_user_id=user.id)
    db.session.add(shelter)
    db.session.flush()
    animal = Animal(
        name='Biscuit',
        gender=Gender.MALE,
        difficulty_level=DifficultyLevel.YELLOW,
        shelter_id=shelter.id,
        created_by_user_id=user.id,
    )
    db.session.add(animal)
    db.session.commit()
    logger.info(f"Seeded demo shelter {shelter.id} with animal {animal.id}")
    click.echo(f"user={user.id} shelter={shelter.id} animal={animal.id}")


@click.command('list-media')
@click.argument('animal_id')
@click.option('--walk', 'walk_id', help='Only media captured during this walk.')
@with_appcontext
def list_media_command(animal_id, walk_id):
    """List media records for an animal, newest first."""
    query = AnimalMedia.query.filter_by(animal_id=animal_id)
    if walk_id:
        query = query.filter_by(walk_id=walk_id)
    media = query.order_by(AnimalMedia.created_at.desc()).all()
    if not media:
        click.echo(f"No media for {animal_id}")
        return
    for m in media:
        default = ' (default)' if m.is_default else ''
        click.echo(f"{m.id}  {m.type:<12} {m.width}x{m.height}  {m.size_bytes} bytes  {m.s3_path}{default}")
