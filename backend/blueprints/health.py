"""Health check blueprint."""
import logging
from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from ..models import db

logger = logging.getLogger(__name__)

bp = Blueprint('health', __name__, url_prefix='/api')


@bp.route('/health', methods=['GET'])
def health():
    """Liveness plus a database round trip."""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except SQLAlchemyError as e:
        logger.error(f"Health check database query failed: {e}")
        database = 'unavailable'
    status_code = 200 if database == 'ok' else 503
    return jsonify({'status': 'ok' if database == 'ok' else 'degraded', 'database': database}), status_code
