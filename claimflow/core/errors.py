"""
Workflow Errors

Typed failures returned by the workflow core. Each carries a stable ``code``
so callers can render a precise message without parsing text.
"""
from typing import Any, List, Optional


class WorkflowError(Exception):
    """Base class for every failure the workflow core reports."""
    code = "WorkflowError"

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.record_id = record_id

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.record_id:
            payload["record_id"] = self.record_id
        return payload


class InvalidTransitionError(WorkflowError):
    """The requested edge does not exist for the record's kind and status."""
    code = "InvalidTransition"


class MissingReasonError(WorkflowError):
    """A rejection or return for review was requested without a reason."""
    code = "MissingReason"


class UnauthorizedError(WorkflowError):
    """The actor role may not perform this action."""
    code = "Unauthorized"


class ClaimNotFoundError(WorkflowError):
    code = "NotFound"

    def __init__(self, record_id: str):
        super().__init__(f"Claim {record_id} not found", record_id=record_id)


class ClaimValidationError(WorkflowError):
    """Malformed submission input."""
    code = "ValidationError"

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ConflictError(WorkflowError):
    code = "Conflict"


class TransitionInProgressError(ConflictError):
    """Another transition for the same record has not finished yet."""


class ConcurrentModificationError(ConflictError):
    """The stored record changed since it was read."""
