"""
Access-scoped record service.

The sole authority on whether a caller may read, create, update, or delete a
record. Callers pass their resolved identity explicitly; nothing here reads
session or request state.
"""

import logging
from models import MedicalRecord
from medical_records.exceptions import (
    AccessDeniedError, RecordNotFoundError, UnauthorizedError
)
from medical_records.repository import RecordRepository

logger = logging.getLogger(__name__)


class RecordService:
    """Ownership-enforcing operations over medical records."""

    def __init__(self, repository=None):
        self.repository = repository or RecordRepository()

    def list_owned(self, owner_id):
        """
        Return every active record owned by ``owner_id``, ordered by id.

        Raises:
            UnauthorizedError: If ``owner_id`` is empty
        """
        self._require_identity(owner_id, 'view records')
        records = self.repository.find_all_by_owner(owner_id)
        logger.info(f'User {owner_id} retrieved {len(records)} medical records.')
        return records

    def get_owned(self, owner_id, record_id):
        """
        Return a single record owned by ``owner_id``.

        A record owned by someone else is reported as not found so that
        existence is not leaked to non-owners.

        Raises:
            UnauthorizedError: If ``owner_id`` is empty
            RecordNotFoundError: If no such record exists for this owner
        """
        self._require_identity(owner_id, 'view this record')
        record = self.repository.find_one_by_id_and_owner(record_id, owner_id)
        if record is None:
            logger.warning(f'Record with ID {record_id} not found for owner {owner_id}')
            raise RecordNotFoundError('Medical record not found.')
        logger.info(f'User {owner_id} retrieved medical record with ID: {record_id}.')
        return record

    def save(self, owner_id, record):
        """
        Create or update a record on behalf of ``owner_id``.

        Args:
            owner_id (str): Caller's subject claim
            record (dict): ``name``, ``age``, ``notes`` and an optional ``id``.
                Any owner or audit keys are ignored.

        Returns:
            MedicalRecord: The persisted record

        Raises:
            UnauthorizedError: If ``owner_id`` is empty
            AccessDeniedError: If ``id`` refers to a record the caller does not own
        """
        self._require_identity(owner_id, 'save records')

        record_id = record.get('id')
        if record_id is None:
            entity = MedicalRecord()
            entity.apply(record)
            entity.owner_id = owner_id
            saved = self.repository.save(entity, actor=owner_id)
            logger.info(f'User {owner_id} created new medical record with ID: {saved.id}.')
            return saved

        if not self.repository.exists_by_id_and_owner(record_id, owner_id):
            logger.warning(f'User {owner_id} attempted to update record {record_id} they do not own.')
            raise AccessDeniedError('You do not have permission to update this record.')

        entity = self.repository.find_one_by_id_and_owner(record_id, owner_id)
        entity.apply(record)
        entity.owner_id = owner_id
        saved = self.repository.save(entity, actor=owner_id)
        logger.info(f'User {owner_id} updated medical record with ID: {saved.id}.')
        return saved

    def delete_owned(self, owner_id, record_id):
        """
        Delete a record owned by ``owner_id``.

        Raises:
            UnauthorizedError: If ``owner_id`` is empty
            RecordNotFoundError: If the record does not exist at all
            AccessDeniedError: If the record exists but belongs to someone else
        """
        self._require_identity(owner_id, 'delete records')

        if not self.repository.exists_by_id(record_id):
            logger.warning(f'Attempt to delete non-existent record with ID: {record_id} by user {owner_id}')
            raise RecordNotFoundError(f'Medical record not found with ID: {record_id}')

        if not self.repository.exists_by_id_and_owner(record_id, owner_id):
            logger.warning(f'User {owner_id} attempted to delete record {record_id} they do not own.')
            raise AccessDeniedError('You do not have permission to delete this medical record.')

        self.repository.delete_by_id(record_id, actor=owner_id)
        logger.info(f'User {owner_id} successfully deleted medical record with ID: {record_id}')

    @staticmethod
    def _require_identity(owner_id, action):
        if not owner_id:
            logger.warning(f"Attempt to {action} without an authenticated user or 'sub' claim.")
            raise UnauthorizedError(f"User must be authenticated with a 'sub' claim to {action}.")
