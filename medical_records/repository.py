"""
Record store for medical records.

Every lookup applies the ``deleted = false`` predicate, so soft-deleted rows
never reach the service. Owner-qualified queries are the only way the service
reads records.
"""

import logging
from datetime import datetime, timezone
from flask import current_app
from models import db, MedicalRecord

logger = logging.getLogger(__name__)


class RecordRepository:
    """
    Persistence operations over the ``medical_records`` table.

    Args:
        soft_delete (bool): Mark rows deleted instead of removing them.
            Defaults to the ``RECORDS_SOFT_DELETE`` app setting.
    """

    def __init__(self, soft_delete=None):
        self._soft_delete = soft_delete

    @property
    def soft_delete(self):
        if self._soft_delete is not None:
            return self._soft_delete
        return current_app.config.get('RECORDS_SOFT_DELETE', True)

    def _active(self):
        return MedicalRecord.query.filter(MedicalRecord.deleted.is_(False))

    def find_all_by_owner(self, owner_id):
        return self._active().filter_by(owner_id=owner_id).order_by(MedicalRecord.id).all()

    def find_one_by_id_and_owner(self, record_id, owner_id):
        return self._active().filter_by(id=record_id, owner_id=owner_id).first()

    def exists_by_id_and_owner(self, record_id, owner_id):
        query = self._active().filter_by(id=record_id, owner_id=owner_id)
        return bool(db.session.query(query.exists()).scalar())

    def exists_by_id(self, record_id):
        query = self._active().filter_by(id=record_id)
        return bool(db.session.query(query.exists()).scalar())

    def count(self):
        return self._active().count()

    def save(self, record, actor):
        """
        Persist a new or modified record, stamping the audit columns.

        Args:
            record (MedicalRecord): Record to persist
            actor (str): Subject performing the write

        Returns:
            MedicalRecord: The persisted record with its id assigned
        """
        now = datetime.now(timezone.utc)
        if record.id is None:
            record.created_by = actor
            record.created_at = now
        record.last_modified_by = actor
        record.updated_at = now

        db.session.add(record)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Failed to save medical record {record.id}: {e}')
            raise
        return record

    def delete_by_id(self, record_id, actor):
        """Soft- or hard-delete a record depending on configuration."""
        record = self._active().filter_by(id=record_id).first()
        if record is None:
            return

        if self.soft_delete:
            record.deleted = True
            record.last_modified_by = actor
            record.updated_at = datetime.now(timezone.utc)
        else:
            db.session.delete(record)

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Failed to delete medical record {record_id}: {e}')
            raise
        logger.debug(f'Medical record {record_id} {"soft" if self.soft_delete else "hard"}-deleted by {actor}')
