"""Error taxonomy for the treatment core.

Validation errors block a workflow transition and never reach the database.
Persistence errors come from a failing write and leave the workflow where it
was so the operator can retry.
"""
from __future__ import annotations


class ClinicError(Exception):
    code = "clinic_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"error": self.code, "message": self.message}


class ValidationError(ClinicError):
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class NotNumeric(ValidationError):
    code = "not_numeric"


class OutOfRange(ValidationError):
    code = "out_of_range"


class MissingField(ValidationError):
    code = "missing_field"


class InvalidChoice(ValidationError):
    code = "invalid_choice"


class WorkflowStateError(ClinicError):
    """Operation is not allowed in the workflow's current state."""

    code = "invalid_transition"


class NotFound(ClinicError):
    code = "not_found"


class PersistenceError(ClinicError):
    """A write to the database failed.

    ``step`` names the commit step that failed and ``completed_steps`` the ones
    that had already been written, since commit steps are not transactional.
    """

    code = "database_error"

    def __init__(self, message: str, step: str | None = None, completed_steps=None):
        super().__init__(message)
        self.step = step
        self.completed_steps = list(completed_steps or [])

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["failed_step"] = self.step
        payload["completed_steps"] = list(self.completed_steps)
        return payload
