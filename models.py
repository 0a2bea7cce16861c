from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

# Initialize SQLAlchemy without binding it to a specific app
db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class MedicalRecord(db.Model):
    """
    Database model for a medical record owned by a single user.

    The owner is the identity provider's subject claim of whoever created
    the record. Rows are soft-deleted by default; every repository query
    filters on ``deleted = false``.
    """
    __tablename__ = 'medical_records'
    __table_args__ = (
        db.Index('ix_medical_records_id_owner', 'id', 'owner_id'),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    age = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=False)
    owner_id = db.Column(db.String(255), nullable=False, index=True)
    created_by = db.Column(db.String(255), nullable=False)
    last_modified_by = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    deleted = db.Column(db.Boolean, nullable=False, default=False)

    # Fields a caller may set; everything else is stamped by the service or repository
    USER_FIELDS = ('name', 'age', 'notes')

    def __init__(self, name=None, age=None, notes=None):
        self.name = name
        self.age = age
        self.notes = notes
        self.deleted = False

    def apply(self, data):
        """Copy the user-editable fields from ``data`` onto this record."""
        for field in self.USER_FIELDS:
            if field in data:
                setattr(self, field, data[field])

    def to_dict(self):
        """
        Convert the record to its JSON representation.

        Returns:
            dict: Record with camelCase keys and ISO-8601 timestamps
        """
        return {
            'id': self.id,
            'name': self.name,
            'age': self.age,
            'notes': self.notes,
            'deleted': self.deleted,
            'ownerId': self.owner_id,
            'createdBy': self.created_by,
            'lastModifiedBy': self.last_modified_by,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<MedicalRecord {self.id} owner={self.owner_id}>'


# --- Write-once enforcement ---
# The identifier and creation stamps are fixed at first persistence.

_IMMUTABLE_COLUMNS = ('id', 'created_by', 'created_at')


@db.event.listens_for(MedicalRecord, 'before_update')
def _prevent_immutable_update(mapper, connection, target):
    state = db.inspect(target)
    for column in _IMMUTABLE_COLUMNS:
        if state.attrs[column].history.has_changes():
            raise RuntimeError(f'MedicalRecord.{column} is immutable once persisted')
