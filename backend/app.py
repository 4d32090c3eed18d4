"""Flask application factory for the shelter media API."""
from flask import Flask
import logging
from pathlib import Path
from .models import db
from .blueprints import media, health
from .cli import init_db_command, seed_demo_command, list_media_command
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    """Flask application factory for the media API.

    Creates and configures a Flask application instance with:
    - SQLAlchemy database integration
    - Blueprint registration for API endpoints
    - CLI command registration

    Args:
        test_config (dict, optional): Configuration overrides for testing

    Returns:
        Flask: Configured Flask application instance
    """
    setup_logging(log_to_file=test_config is None)
    logger.info("Starting Flask application initialization")

    app = Flask(__name__, instance_relative_config=True)

    if test_config is None:
        if app.config.from_pyfile('config.py', silent=True):
            logger.info("Loaded configuration from instance/config.py")
        else:
            logger.debug("No instance config file found, using defaults")
    else:
        app.config.from_mapping(test_config)
        logger.info("Loaded test configuration")

    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        db_path = Path(app.instance_path) / 'shelter_media.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{db_path}'
    logger.info(f"Using database URI: {app.config['SQLALCHEMY_DATABASE_URI']}")
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    db.init_app(app)

    app.register_blueprint(media.bp)
    app.register_blueprint(health.bp)
    logger.debug("Registered media and health blueprints")

    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)
    app.cli.add_command(list_media_command)
    logger.info("CLI commands registered: init-db, seed-demo, list-media")

    logger.info("Flask application initialization completed successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
