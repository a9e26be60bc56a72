# Core module - statuses, catalog, models and errors
from .states import ActorRole, ClaimStatus, ProviderRole, RecordKind, INITIAL_STATUS
from .catalog import STATUS_CATALOG, StatusColor, StatusInfo, get_status_info, is_terminal
from .payloads import (
    DoctorPayload,
    ItemLine,
    LabPayload,
    PharmacistPayload,
    RadiologyPayload,
    RoleSpecificPayload,
    UnknownPayload,
    dump_role_payload,
    parse_role_payload,
)
from .models import AuditLogEntry, ClaimRecord, ClaimSubmission
from .errors import (
    ClaimNotFoundError,
    ClaimValidationError,
    ConcurrentModificationError,
    ConflictError,
    InvalidTransitionError,
    MissingReasonError,
    TransitionInProgressError,
    UnauthorizedError,
    WorkflowError,
)

__all__ = [
    "ActorRole",
    "ClaimStatus",
    "ProviderRole",
    "RecordKind",
    "INITIAL_STATUS",
    "STATUS_CATALOG",
    "StatusColor",
    "StatusInfo",
    "get_status_info",
    "is_terminal",
    "DoctorPayload",
    "ItemLine",
    "LabPayload",
    "PharmacistPayload",
    "RadiologyPayload",
    "RoleSpecificPayload",
    "UnknownPayload",
    "dump_role_payload",
    "parse_role_payload",
    "AuditLogEntry",
    "ClaimRecord",
    "ClaimSubmission",
    "ClaimNotFoundError",
    "ClaimValidationError",
    "ConcurrentModificationError",
    "ConflictError",
    "InvalidTransitionError",
    "MissingReasonError",
    "TransitionInProgressError",
    "UnauthorizedError",
    "WorkflowError",
]
