"""
JSON API for medical records - Flask Blueprint.

Every endpoint except the API root requires a logged-in session. Request
bodies are validated before the service is called; service errors map to
fixed status codes and a uniform error envelope:

    {"status": 404, "message": "...", "path": "/api/v1/records/7",
     "timestamp": "2024-01-15T10:30:00+00:00"}
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, jsonify, request, url_for
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from medical_records.exceptions import RecordError
from medical_records.identity import (
    current_display_name, current_subject, is_authenticated
)
from medical_records.service import RecordService
from validators import JsonMedicalRecordSchema, format_validation_errors

logger = logging.getLogger(__name__)

api_blueprint = Blueprint('api', __name__, url_prefix='/api/v1')

record_service = RecordService()

GENERIC_ERROR_MESSAGE = 'An unexpected error occurred. Please try again later.'


# --- Authentication Enforcement ---

@api_blueprint.before_request
def require_session():
    """Reject requests without a logged-in session, except the public API root."""
    if request.endpoint == 'api.api_root':
        return None
    if not is_authenticated():
        logger.warning(f'Unauthenticated API request to {request.path}')
        return _error_response(401, 'Authentication required.')


@api_blueprint.route('', methods=['GET'])
def api_root():
    """Describe the API and the caller's login state."""
    response = {'message': 'Welcome to the Medical Register API v1'}
    if is_authenticated():
        response['authenticatedUser'] = current_display_name()
        response['isAuthenticated'] = True
    else:
        response['isAuthenticated'] = False
    return jsonify(response)


# --- CRUD Operations ---

@api_blueprint.route('/records', methods=['GET'])
def list_records():
    """List the caller's medical records."""
    logger.info(f'API: User {current_display_name()} attempting to list records.')
    records = record_service.list_owned(current_subject())
    return jsonify([r.to_dict() for r in records])


@api_blueprint.route('/records', methods=['POST'])
def create_record():
    """Create a record (or update one when the body carries an id)."""
    user_name = current_display_name()
    data = _load_body()
    logger.info(f'API: User {user_name} attempting to create a new record.')

    record = record_service.save(current_subject(), data)
    logger.info(f'API: User {user_name} created a record with ID: {record.id}.')

    response = jsonify(record.to_dict())
    response.status_code = 201
    response.headers['Location'] = url_for('api.get_record', record_id=record.id)
    return response


@api_blueprint.route('/records/<int:record_id>', methods=['GET'])
def get_record(record_id):
    """Read a single record."""
    logger.info(f'API: User {current_display_name()} attempting to retrieve record ID: {record_id}.')
    record = record_service.get_owned(current_subject(), record_id)
    return jsonify(record.to_dict())


@api_blueprint.route('/records/<int:record_id>', methods=['PUT'])
def update_record(record_id):
    """Update a record. The id in the path wins over any id in the body."""
    user_name = current_display_name()
    data = _load_body()
    data['id'] = record_id
    logger.info(f'API: User {user_name} attempting to update record ID: {record_id}.')

    record = record_service.save(current_subject(), data)
    logger.info(f'API: User {user_name} updated record ID: {record.id}.')
    return jsonify(record.to_dict())


@api_blueprint.route('/records/<int:record_id>', methods=['DELETE'])
def delete_record(record_id):
    """Delete a record."""
    user_name = current_display_name()
    logger.info(f'API: User {user_name} attempting to delete record ID: {record_id}.')
    record_service.delete_owned(current_subject(), record_id)
    logger.info(f'API: User {user_name} successfully deleted record ID: {record_id}.')
    return '', 204


# --- Error Handlers ---

@api_blueprint.errorhandler(RecordError)
def handle_record_error(e):
    logger.warning(f'{type(e).__name__}: {e.message} for path {request.path}')
    return _error_response(e.status_code, e.message)


@api_blueprint.errorhandler(ValidationError)
def handle_validation_error(e):
    errors = format_validation_errors(e.messages)
    logger.warning(f'Validation failed: {errors} for path {request.path}')
    return _error_response(400, f'Validation failed: {errors}')


@api_blueprint.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return _error_response(e.code, e.description)
    logger.error(f'Unhandled exception: {e} for path {request.path}', exc_info=e)
    return _error_response(500, GENERIC_ERROR_MESSAGE)


# --- Helper Functions ---

def _load_body():
    """Parse and validate the JSON request body. Raises ValidationError."""
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError({'body': ['Request body must be valid JSON']})
    return JsonMedicalRecordSchema().load(body)


def _error_response(status, message):
    """Build the JSON error envelope."""
    response = jsonify({
        'status': status,
        'message': message,
        'path': request.path,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
    response.status_code = status
    return response
