"""ID Card Studio error taxonomy.

Every caller-facing operation either returns its success payload or raises
exactly one of these. server.py renders them as {"detail", "code"}.
"""

from typing import Optional


class IdCardError(Exception):
    """Base class for classified ID Card Studio errors."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.kind}


class InvalidInputError(IdCardError):
    """Required field missing or malformed in the caller payload."""
    kind = "invalid-input"
    status_code = 400


class UnauthenticatedError(IdCardError):
    kind = "unauthenticated"
    status_code = 401


class NotFoundError(IdCardError):
    kind = "not-found"
    status_code = 404


class FailedPreconditionError(IdCardError):
    """Record exists but is not in a usable state (inactive, expired)."""
    kind = "failed-precondition"
    status_code = 409


class ResourceExhaustedError(IdCardError):
    """Submission cap or card quota reached."""
    kind = "resource-exhausted"
    status_code = 429


class InternalError(IdCardError):
    """Unexpected collaborator failure (store, OCR, renderer)."""
    kind = "internal"
    status_code = 500


class PartialWriteError(InternalError):
    """A write succeeded but a dependent write after it did not.

    e.g. a submission was stored but its form counter was not incremented.
    The id of the record that was written travels with the error so the
    drift can be reconciled.
    """

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["record_id"] = self.record_id
        return data
