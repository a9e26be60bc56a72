"""
Domain Events

Side effects the workflow asks external collaborators to carry out
(notification delivery, audit feeds). The core only describes them.
"""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .models import ClaimRecord
from .states import ClaimStatus, ProviderRole, RecordKind


class DomainEvent(BaseModel):
    record_id: str
    occurred_at: datetime = Field(default_factory=datetime.now)


class ClaimSubmitted(DomainEvent):
    event_type: Literal["CLAIM_SUBMITTED"] = "CLAIM_SUBMITTED"
    kind: RecordKind
    provider_role: ProviderRole
    amount: Decimal


class StatusChanged(DomainEvent):
    event_type: Literal["STATUS_CHANGED"] = "STATUS_CHANGED"
    from_status: Optional[ClaimStatus] = None
    to_status: ClaimStatus
    actor: str
    reason: str = ""


class NotificationRequested(DomainEvent):
    """Ask the notification collaborator to tell someone about a record."""
    event_type: Literal["NOTIFICATION_REQUESTED"] = "NOTIFICATION_REQUESTED"
    recipient_role: str
    recipient_id: Optional[str] = None
    message: str


AnyEvent = Union[ClaimSubmitted, StatusChanged, NotificationRequested]


def status_changed(record: ClaimRecord) -> StatusChanged:
    """Build the event for the transition that produced ``record``."""
    entry = record.audit_log[-1]
    return StatusChanged(
        record_id=record.id,
        from_status=entry.from_status,
        to_status=record.status,
        actor=entry.actor,
        reason=entry.reasoning,
        occurred_at=entry.timestamp,
    )
