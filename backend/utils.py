"""Backend utility functions for the shelter media API."""
import os
from flask import current_app, jsonify
from .models import db, Shelter, Animal, Walk, User
import logging


logger = logging.getLogger(__name__)

FK_MODELS = {
    'shelters': Shelter,
    'animals': Animal,
    'walks': Walk,
    'users': User,
}


def api_error(message, status_code=400, log_level='warning', details=None):
    """JSON error body plus a log line at log_level.

    details is logged but never sent to the client.
    """
    log_func = getattr(logger, log_level, logger.warning)
    if details:
        log_func(f"API Error ({status_code}): {message} - Details: {details}")
    else:
        log_func(f"API Error ({status_code}): {message}")

    return jsonify({'error': message}), status_code


def handle_api_exception(e, operation="operation", status_code=500):
    """Log an unexpected exception with its traceback and return a generic error."""
    logger.error(f"Exception during {operation}: {str(e)}", exc_info=True)
    return api_error(f"Failed to {operation}", status_code, 'error')


def format_validation_errors(e):
    """Flatten a pydantic ValidationError into ``field: message`` pairs."""
    errors = []
    for error in e.errors():
        field = '.'.join(str(x) for x in error['loc'])
        errors.append(f"{field}: {error['msg']}")
    return '; '.join(errors)


def validate_foreign_key(table_name, column_name, value):
    """
    Validate that a foreign key reference exists.

    Args:
        table_name (str): Name of the table being referenced
        column_name (str): Name of the column being referenced
        value: The value to check for existence

    Returns:
        bool: True if reference exists or value is None, False otherwise
    """
    if value is None:
        return True  # Optional FKs

    model = FK_MODELS.get(table_name)
    if model is None:
        logger.warning(f"Unknown table for FK validation: {table_name}")
        return False
    try:
        return db.session.get(model, value) is not None
    except Exception as e:
        logger.error(f"Error validating FK {table_name}.{column_name}={value}: {e}")
        return False


def media_public_url(s3_path):
    """Public URL of a stored object, or None when no public base URL is configured."""
    base_url = current_app.config.get('CLOUD_STORAGE_PUBLIC_URL') or os.getenv('CLOUD_STORAGE_PUBLIC_URL')
    bucket = current_app.config.get('CLOUD_STORAGE_BUCKET') or os.getenv('CLOUD_STORAGE_BUCKET')
    if not base_url or not bucket or not s3_path:
        return None
    return f"{base_url.rstrip('/')}/{bucket}/{s3_path}"
