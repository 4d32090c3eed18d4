from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
import logging
from shared.models import (
    Base, User, Shelter, ShelterMember, KennelRoom, Kennel, Animal,
    KennelOccupant, Walk, AnimalMedia, create_id, now
)

logger = logging.getLogger(__name__)
db = SQLAlchemy(model_class=Base)


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(db_conn, conn_record):
    """SQLite leaves foreign key enforcement off unless asked per connection."""
    module = type(db_conn).__module__
    if 'sqlite' in module:
        cursor = db_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON;")
        cursor.close()
