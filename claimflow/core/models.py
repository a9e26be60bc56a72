"""
Claim Pydantic Models

Defines the normalized claim/emergency-request record and the submission
input, with validation.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Tuple
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from .payloads import (
    RoleSpecificPayload,
    UnknownPayload,
    dump_role_payload,
    parse_role_payload,
)
from .states import ClaimStatus, ProviderRole, RecordKind


class AuditLogEntry(BaseModel):
    """Entry in the record's audit log."""
    model_config = ConfigDict(frozen=True)

    actor: str = Field(..., description="Role or system component that acted")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the event occurred")
    decision: str = Field(..., description="The action taken")
    reasoning: str = Field(default="", description="Reason supplied with the action, if any")
    from_status: Optional[ClaimStatus] = None
    to_status: Optional[ClaimStatus] = None


def _check_family_member(family_member_id: Optional[str], relation: Optional[str]) -> None:
    if family_member_id and not (relation or "").strip():
        raise ValueError("family_member_relation is required when family_member_id is set")
    if relation and not family_member_id:
        raise ValueError("family_member_relation given without family_member_id")


class ClaimSubmission(BaseModel):
    """Input for submitting a new claim or emergency request."""
    kind: RecordKind = Field(default=RecordKind.HEALTHCARE_CLAIM)
    client_id: str = Field(..., min_length=1, description="Main client the claim is billed to")
    client_name: Optional[str] = None
    provider_name: Optional[str] = None
    family_member_id: Optional[str] = None
    family_member_relation: Optional[str] = None
    family_member_name: Optional[str] = None
    entered_price: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("entered_price", "amount"),
        description="Price typed by the provider",
    )
    reference_price: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="System/union price for the service",
    )
    is_follow_up: bool = Field(default=False, description="Zero-cost repeat visit")
    diagnosis: Optional[str] = None
    treatment_details: Optional[str] = None
    description: Optional[str] = None
    service_date: date = Field(default_factory=date.today)
    role_specific_payload: Any = None
    fulfilled_item_ids: Optional[List[str]] = Field(
        default=None,
        description="Pharmacist only: ids of prescribed items actually dispensed",
    )

    @field_validator("client_id", "family_member_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("fulfilled_item_ids", mode="before")
    @classmethod
    def _coerce_item_ids(cls, value: Any) -> Any:
        if value is None:
            return None
        return [str(item_id) for item_id in value]

    @model_validator(mode="after")
    def _family_member_relation(self) -> "ClaimSubmission":
        _check_family_member(self.family_member_id, self.family_member_relation)
        return self


class ClaimRecord(BaseModel):
    """
    Claim / Emergency Request Record

    Immutable: every workflow step produces a new record through
    record_state_change / add_audit_entry, so status can only move via the
    state machine.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique record identifier")
    kind: RecordKind
    status: ClaimStatus
    provider_role: ProviderRole
    provider_name: Optional[str] = None

    client_id: str
    client_name: Optional[str] = None
    family_member_id: Optional[str] = None
    family_member_relation: Optional[str] = None
    family_member_name: Optional[str] = None

    amount: Decimal = Field(..., ge=0)
    entered_price: Optional[Decimal] = None
    reference_price: Optional[Decimal] = None
    is_follow_up: bool = False

    diagnosis: Optional[str] = None
    treatment_details: Optional[str] = None
    description: Optional[str] = None

    service_date: Optional[date] = None
    submitted_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    rejection_reason: Optional[str] = Field(
        default=None,
        description="Reason of the latest return or rejection; earlier ones stay in audit_log",
    )

    role_specific_payload: RoleSpecificPayload = Field(default_factory=UnknownPayload)
    is_partial_fulfillment: Optional[bool] = None
    original_item_count: Optional[int] = None
    fulfilled_item_count: Optional[int] = None

    version: int = Field(default=0, ge=0, description="Optimistic concurrency counter")
    status_history: Tuple[ClaimStatus, ...] = ()
    audit_log: Tuple[AuditLogEntry, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _parse_payload(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("provider_role"):
            data = dict(data)
            data["role_specific_payload"] = parse_role_payload(
                data["provider_role"], data.get("role_specific_payload")
            )
        return data

    @model_validator(mode="after")
    def _family_member_relation(self) -> "ClaimRecord":
        _check_family_member(self.family_member_id, self.family_member_relation)
        return self

    @field_serializer("role_specific_payload")
    def _dump_payload(self, payload: RoleSpecificPayload) -> Any:
        return dump_role_payload(payload)

    @property
    def is_returned(self) -> bool:
        return self.status == ClaimStatus.RETURNED_FOR_REVIEW

    @property
    def is_for_family_member(self) -> bool:
        return self.family_member_id is not None

    def record_state_change(self, new_status: ClaimStatus, **changes: Any) -> "ClaimRecord":
        """Return a copy moved to new_status, with the old status kept in history."""
        now = datetime.now()
        history = self.status_history
        if not history or history[-1] != self.status:
            history = history + (self.status,)
        return self.model_copy(
            update={
                **changes,
                "status": new_status,
                "status_history": history,
                "updated_at": now,
            }
        )

    def add_audit_entry(
        self,
        actor: str,
        decision: str,
        reasoning: str = "",
        from_status: Optional[ClaimStatus] = None,
        to_status: Optional[ClaimStatus] = None,
    ) -> "ClaimRecord":
        """Return a copy with an entry appended to the audit log."""
        entry = AuditLogEntry(
            actor=actor,
            decision=decision,
            reasoning=reasoning,
            from_status=from_status,
            to_status=to_status,
        )
        return self.model_copy(
            update={"audit_log": self.audit_log + (entry,), "updated_at": entry.timestamp}
        )
