from marshmallow import Schema, fields, validate, pre_load, ValidationError, EXCLUDE

MAX_AGE = 150
MAX_NAME_LENGTH = 255


def _not_blank(message):
    """Build a validator rejecting empty or whitespace-only strings."""
    def validator(value):
        if not value or not value.strip():
            raise ValidationError(message)
    return validator


def _age_field(strict=False):
    return fields.Integer(
        required=True,
        strict=strict,
        validate=[
            validate.Range(min=0, error='Age must not be negative'),
            validate.Range(max=MAX_AGE, error=f'Age must not exceed {MAX_AGE}'),
        ],
        error_messages={
            'required': 'Age is mandatory',
            'null': 'Age is mandatory',
            'invalid': 'Age must be a whole number'
        }
    )


def _id_field(strict=False):
    return fields.Integer(
        required=False,
        allow_none=True,
        strict=strict,
        error_messages={'invalid': 'Record ID must be a whole number'}
    )


class MedicalRecordSchema(Schema):
    """Schema for validating medical record input from forms and JSON bodies."""

    class Meta:
        # Owner and audit fields are server-managed; drop them along with anything else unknown
        unknown = EXCLUDE

    id = _id_field()
    name = fields.String(
        required=True,
        validate=[
            _not_blank('Name is mandatory'),
            validate.Length(max=MAX_NAME_LENGTH,
                            error=f'Name must not exceed {MAX_NAME_LENGTH} characters'),
        ],
        error_messages={'required': 'Name is mandatory', 'null': 'Name is mandatory'}
    )
    age = _age_field()
    notes = fields.String(
        required=True,
        validate=_not_blank('Notes are mandatory'),
        error_messages={'required': 'Notes are mandatory', 'null': 'Notes are mandatory'}
    )

    @pre_load
    def drop_empty_values(self, data, **kwargs):
        """Treat empty form inputs as missing so the 'required' message applies."""
        if not isinstance(data, dict):
            return data
        return {key: value for key, value in data.items() if value != ''}


class JsonMedicalRecordSchema(MedicalRecordSchema):
    """Schema for JSON bodies, where `id` and `age` must already be integers."""

    id = _id_field(strict=True)
    age = _age_field(strict=True)


def format_validation_errors(messages):
    """
    Flatten marshmallow error messages into a single line.

    Args:
        messages (dict): ``ValidationError.messages``

    Returns:
        str: ``"field: message, field: message"`` sorted by field name
    """
    if not isinstance(messages, dict):
        return str(messages)

    parts = []
    for field in sorted(messages):
        errors = messages[field]
        if isinstance(errors, dict):
            errors = [format_validation_errors(errors)]
        elif not isinstance(errors, (list, tuple)):
            errors = [errors]
        for error in errors:
            parts.append(f'{field}: {error}')
    return ', '.join(parts)
