"""
Server-rendered pages for the medical register.

Handlers resolve the caller's identity, delegate to the record service, and
either render a template or redirect back to the list with a flash message.
Ownership decisions are left to the service.
"""

import logging
from flask import Blueprint, flash, jsonify, redirect, render_template, request, url_for
from marshmallow import ValidationError
from models import db
from medical_records.auth import login_required
from medical_records.exceptions import (
    AccessDeniedError, RecordNotFoundError, UnauthorizedError
)
from medical_records.identity import (
    current_display_name, current_subject, is_authenticated
)
from medical_records.service import RecordService
from validators import MedicalRecordSchema

logger = logging.getLogger(__name__)

home_blueprint = Blueprint('home', __name__)
records_blueprint = Blueprint('records', __name__, url_prefix='/records')

record_service = RecordService()

APP_VERSION = '1.0.0'


@home_blueprint.app_context_processor
def inject_user():
    """Expose the greeting name and login state to every template."""
    return {
        'user_name': current_display_name(),
        'is_authenticated': is_authenticated(),
    }


@home_blueprint.route('/')
def index():
    """Render the home page."""
    logged_out = request.args.get('auth0logout') == 'true'
    return render_template('index.html', logged_out=logged_out)


@home_blueprint.route('/health', methods=['GET'])
def health_check():
    """
    Health check endpoint for container orchestration (liveness/readiness).
    Returns 200 if the service is operational, 503 if degraded.
    """
    health = {
        'status': 'healthy',
        'version': APP_VERSION,
        'checks': {}
    }

    try:
        db.session.execute(db.text('SELECT 1'))
        health['checks']['database'] = 'ok'
    except Exception as e:
        health['status'] = 'degraded'
        health['checks']['database'] = 'error'
        logger.warning(f'Health check: database failed: {e}')

    status_code = 200 if health['status'] == 'healthy' else 503
    return jsonify(health), status_code


# --- Records ---

@records_blueprint.route('', methods=['GET'])
@login_required
def list_records():
    """List the caller's medical records."""
    user_name = current_display_name()
    try:
        logger.info(f'User {user_name} attempting to list records.')
        records = record_service.list_owned(current_subject())
    except UnauthorizedError as e:
        logger.warning(f'Access denied for user {user_name} while listing records: {e.message}')
        flash(e.message, 'danger')
        return redirect(url_for('home.index'))
    return render_template('records/list.html', records=records)


@records_blueprint.route('/new', methods=['GET'])
@login_required
def new_record():
    """Show an empty record form."""
    logger.info(f'User {current_display_name()} is accessing the new record form.')
    return render_template('records/form.html', record={}, errors={})


@records_blueprint.route('/save', methods=['POST'])
@login_required
def save_record():
    """Create or update a record from the submitted form."""
    user_name = current_display_name()
    form_data = request.form.to_dict()

    try:
        data = MedicalRecordSchema().load(form_data)
    except ValidationError as err:
        logger.warning(f'User {user_name} submitted an invalid record form: {err.messages}')
        return render_template('records/form.html', record=form_data, errors=err.messages)

    is_new = data.get('id') is None
    try:
        saved = record_service.save(current_subject(), data)
    except (AccessDeniedError, RecordNotFoundError, UnauthorizedError) as e:
        logger.warning(f'User {user_name} could not save record {data.get("id")}: {e.message}')
        flash(e.message, 'danger')
        return redirect(url_for('records.list_records'))

    action = 'created' if is_new else 'updated'
    logger.info(f'User {user_name} {action} a record with ID: {saved.id}.')
    flash(f'Record successfully {action}.', 'success')
    return redirect(url_for('records.list_records'))


@records_blueprint.route('/edit/<int:record_id>', methods=['GET'])
@login_required
def edit_record(record_id):
    """Show the form for an existing record."""
    user_name = current_display_name()
    try:
        record = record_service.get_owned(current_subject(), record_id)
    except (AccessDeniedError, RecordNotFoundError, UnauthorizedError) as e:
        logger.warning(f'User {user_name} cannot edit record ID {record_id}: {e.message}')
        flash(e.message, 'danger')
        return redirect(url_for('records.list_records'))

    logger.info(f'User {user_name} is accessing edit form for record ID: {record_id}.')
    return render_template('records/form.html', record=record, errors={})


@records_blueprint.route('/delete/<int:record_id>', methods=['GET', 'POST'])
@login_required
def delete_record(record_id):
    """Delete a record and return to the list."""
    user_name = current_display_name()
    try:
        logger.info(f'User {user_name} attempting to delete record ID: {record_id}.')
        record_service.delete_owned(current_subject(), record_id)
        flash('Record successfully deleted.', 'success')
    except (AccessDeniedError, RecordNotFoundError, UnauthorizedError) as e:
        logger.warning(f'User {user_name} cannot delete record ID {record_id}: {e.message}')
        flash(e.message, 'danger')
    return redirect(url_for('records.list_records'))
