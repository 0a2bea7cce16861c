"""
Error kinds raised by the record service.

Each error carries the HTTP status the JSON API maps it to. The message is
user-safe and is shown verbatim in flash messages and error envelopes.
"""


class RecordError(Exception):
    """Base exception for record access failures."""

    status_code = 500

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class UnauthorizedError(RecordError):
    """No resolvable identity for the caller."""

    status_code = 401


class AccessDeniedError(RecordError):
    """The record exists but belongs to someone else."""

    status_code = 403


class RecordNotFoundError(RecordError):
    """The record does not exist (or is not visible to the caller)."""

    status_code = 404
