"""Media blueprint for Flask API."""
from flask import Blueprint, jsonify, request
import logging
from pydantic import ValidationError as PydanticValidationError

from ..models import db, AnimalMedia
from ..utils import (
    api_error, handle_api_exception, format_validation_errors, validate_foreign_key, media_public_url
)
from shared.cloud_storage import get_cloud_storage
from shared.schemas import MediaCreateRequest, MediaResponse, MediaListResponse

logger = logging.getLogger(__name__)


bp = Blueprint('media', __name__, url_prefix='/api')


def serialize_media(media):
    data = MediaResponse.model_validate(media)
    data.url = media_public_url(media.s3_path)
    return data.model_dump(mode='json')


@bp.route('/media', methods=['POST'])
def create_media():
    """Record a media file that has been uploaded to object storage."""
    data = request.get_json(silent=True)
    if data is None:
        return api_error('Invalid JSON data')

    try:
        media_request = MediaCreateRequest(**data)
    except PydanticValidationError as e:
        return api_error(format_validation_errors(e))

    references = [
        ('shelters', media_request.shelter_id),
        ('animals', media_request.animal_id),
        ('walks', media_request.walk_id),
        ('users', media_request.created_by_user_id),
    ]
    for table_name, value in references:
        if not validate_foreign_key(table_name, 'id', value):
            return api_error(f'Referenced record not found in {table_name}: {value}', 404)

    try:
        if media_request.default_photo:
            # One default photo per animal
            AnimalMedia.query.filter_by(animal_id=media_request.animal_id, is_default=True).update(
                {AnimalMedia.is_default: False}, synchronize_session=False
            )
        media = AnimalMedia(
            animal_id=media_request.animal_id,
            shelter_id=media_request.shelter_id,
            walk_id=media_request.walk_id,
            created_by_user_id=media_request.created_by_user_id,
            is_default=media_request.default_photo,
            width=media_request.width,
            height=media_request.height,
            size_bytes=media_request.size,
            type=media_request.type,
            s3_path=media_request.file_path,
            thumbnail_url=media_request.thumbnail_url,
            media_metadata=media_request.metadata,
        )
        db.session.add(media)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return handle_api_exception(e, "create media record")

    logger.info(f"Created media {media.id} for animal {media.animal_id} at {media.s3_path}")
    return jsonify(serialize_media(media)), 201


@bp.route('/animals/<animal_id>/media', methods=['GET'])
def list_animal_media(animal_id):
    """List an animal's media, newest first."""
    if not validate_foreign_key('animals', 'id', animal_id):
        return api_error(f'Animal not found: {animal_id}', 404)

    query = AnimalMedia.query.filter_by(animal_id=animal_id)
    walk_id = request.args.get('walk_id')
    if walk_id:
        query = query.filter_by(walk_id=walk_id)
    media = query.order_by(AnimalMedia.created_at.desc(), AnimalMedia.id).all()

    response = MediaListResponse(
        animal_id=animal_id,
        count=len(media),
        media=[serialize_media(m) for m in media],
    )
    return jsonify(response.model_dump(mode='json'))


@bp.route('/media/<media_id>', methods=['GET'])
def get_media(media_id):
    media = db.session.get(AnimalMedia, media_id)
    if media is None:
        return api_error(f'Media not found: {media_id}', 404)
    return jsonify(serialize_media(media))


@bp.route('/media/<media_id>', methods=['DELETE'])
def delete_media(media_id):
    """Delete the stored object, then the record.

    The record is kept when storage deletion fails so it can be retried.
    """
    media = db.session.get(AnimalMedia, media_id)
    if media is None:
        return api_error(f'Media not found: {media_id}', 404)

    try:
        removed = get_cloud_storage().delete_object(media.s3_path)
        if not removed:
            logger.warning(f"Object {media.s3_path} for media {media_id} was already gone")
    except Exception as e:
        return handle_api_exception(e, "delete media from storage")

    try:
        db.session.delete(media)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        return handle_api_exception(e, "delete media record")

    logger.info(f"Deleted media {media_id} ({media.s3_path})")
    return jsonify({'message': 'Media deleted', 'id': media_id})
