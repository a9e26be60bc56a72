"""
Workflow Service

The operations callers invoke on claims and emergency requests: submit,
approve, reject, return for review and re-approve. Decides which role may
take which edge, asks the state machine to validate it, resolves prices and
returns the updated record with the domain events it produced.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from claimflow.core.errors import (
    ClaimNotFoundError,
    ClaimValidationError,
    InvalidTransitionError,
    TransitionInProgressError,
    UnauthorizedError,
)
from claimflow.core.events import (
    AnyEvent,
    ClaimSubmitted,
    DomainEvent,
    NotificationRequested,
    status_changed,
)
from claimflow.core.models import ClaimRecord, ClaimSubmission
from claimflow.core.payloads import PharmacistPayload, parse_role_payload, payload_items
from claimflow.core.states import INITIAL_STATUS, ActorRole, ClaimStatus, ProviderRole, RecordKind
from claimflow.monitors.process_monitor import ProcessMonitor
from claimflow.pricing.resolver import resolve_fulfillment, resolve_price
from claimflow.query.engine import QueryResult, QuerySpec, QueueStats, query, summarize
from claimflow.state_machine.machine import ClaimStateMachine

from .repository import ClaimRepository, InMemoryClaimRepository

logger = logging.getLogger(__name__)

EventPublisher = Callable[[DomainEvent], None]


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RETURN_FOR_REVIEW = "return for review"
    RE_APPROVE = "re-approve"


@dataclass(frozen=True)
class ReviewEdge:
    """A reviewer action from one status to another, and who may take it."""
    source: ClaimStatus
    target: ClaimStatus
    roles: FrozenSet[ActorRole]


_MEDICAL = frozenset({ActorRole.MEDICAL_ADMIN})
_COORDINATION = frozenset({ActorRole.COORDINATION_ADMIN})

REVIEW_EDGES: Dict[Tuple[RecordKind, ReviewAction], List[ReviewEdge]] = {
    (RecordKind.HEALTHCARE_CLAIM, ReviewAction.APPROVE): [
        ReviewEdge(ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_MEDICAL, _MEDICAL),
        ReviewEdge(ClaimStatus.PENDING_COORDINATION, ClaimStatus.APPROVED_FINAL, _COORDINATION),
        ReviewEdge(ClaimStatus.RETURNED_FOR_REVIEW, ClaimStatus.PENDING_COORDINATION, _MEDICAL),
    ],
    (RecordKind.HEALTHCARE_CLAIM, ReviewAction.REJECT): [
        ReviewEdge(ClaimStatus.PENDING_MEDICAL, ClaimStatus.REJECTED_MEDICAL, _MEDICAL),
        ReviewEdge(ClaimStatus.PENDING_COORDINATION, ClaimStatus.REJECTED_FINAL, _COORDINATION),
        ReviewEdge(ClaimStatus.RETURNED_FOR_REVIEW, ClaimStatus.REJECTED_MEDICAL, _MEDICAL),
    ],
    (RecordKind.HEALTHCARE_CLAIM, ReviewAction.RETURN_FOR_REVIEW): [
        ReviewEdge(ClaimStatus.PENDING_COORDINATION, ClaimStatus.RETURNED_FOR_REVIEW, _COORDINATION),
    ],
    (RecordKind.HEALTHCARE_CLAIM, ReviewAction.RE_APPROVE): [
        ReviewEdge(ClaimStatus.RETURNED_FOR_REVIEW, ClaimStatus.PENDING_COORDINATION, _MEDICAL),
    ],
    (RecordKind.EMERGENCY_REQUEST, ReviewAction.APPROVE): [
        ReviewEdge(ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_BY_MEDICAL, _MEDICAL),
    ],
    (RecordKind.EMERGENCY_REQUEST, ReviewAction.REJECT): [
        ReviewEdge(ClaimStatus.PENDING_MEDICAL, ClaimStatus.REJECTED_BY_MEDICAL, _MEDICAL),
    ],
}

_APPROVED_STATUSES = frozenset({ClaimStatus.APPROVED_FINAL, ClaimStatus.APPROVED_BY_MEDICAL})
_REJECTED_STATUSES = frozenset({
    ClaimStatus.REJECTED_MEDICAL,
    ClaimStatus.REJECTED_FINAL,
    ClaimStatus.REJECTED_BY_MEDICAL,
})


def resolve_edge(
    kind: RecordKind,
    action: ReviewAction,
    status: ClaimStatus,
    actor_role: ActorRole,
) -> ReviewEdge:
    """
    Pick the edge an actor's action takes from the current status.

    Authorization is decided per role and action within the record's kind,
    not per edge. A role that holds the action somewhere in the machine but
    not at the current status gets InvalidTransitionError. For example, a
    coordination admin rejecting a claim still in PENDING_MEDICAL gets
    InvalidTransitionError, because the claim has not reached coordination
    yet. Only a role that holds no edge for the action at all gets
    UnauthorizedError. A repeated approval therefore fails the same way for
    every reviewer.

    Raises:
        InvalidTransitionError: The action does not exist for this kind, or
            the actor's edges for it do not start at the current status
        UnauthorizedError: The actor holds no edge for this action on this kind
    """
    edges = REVIEW_EDGES.get((kind, action), [])
    if not edges:
        raise InvalidTransitionError(f"A {kind.value} cannot be subject to {action.value}")

    permitted = [edge for edge in edges if actor_role in edge.roles]
    if not permitted:
        raise UnauthorizedError(f"{actor_role.value} is not allowed to {action.value} a {kind.value}")

    for edge in permitted:
        if edge.source == status:
            return edge

    raise InvalidTransitionError(f"Cannot {action.value} from status {status.value}")


class WorkflowResult(BaseModel):
    """Updated record plus the side effects the caller should dispatch."""
    record: ClaimRecord
    events: List[AnyEvent]


class WorkflowService:
    """
    Orchestrates the claim review workflow over a repository collaborator.

    Holds no global state; create one per repository (or per request).
    """

    def __init__(
        self,
        repository: Optional[ClaimRepository] = None,
        state_machine: Optional[ClaimStateMachine] = None,
        process_monitor: Optional[ProcessMonitor] = None,
        publisher: Optional[EventPublisher] = None,
    ):
        self.repository = repository if repository is not None else InMemoryClaimRepository()
        self.state_machine = state_machine or ClaimStateMachine()
        self.process_monitor = process_monitor or ProcessMonitor(self.state_machine)
        self._publisher = publisher
        self._in_flight: Set[str] = set()
        self._in_flight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> ClaimRecord:
        record = self.repository.get(record_id)
        if record is None:
            raise ClaimNotFoundError(record_id)
        return record

    def list_records(self) -> List[ClaimRecord]:
        return self.repository.list()

    def query(self, spec: Optional[QuerySpec] = None, records: Optional[Iterable[ClaimRecord]] = None) -> QueryResult:
        """Run the query engine over the given records, or everything stored."""
        return query(self.repository.list() if records is None else records, spec)

    def summary(self, records: Optional[Iterable[ClaimRecord]] = None) -> QueueStats:
        return summarize(self.repository.list() if records is None else records)

    def next_valid_states(self, record: ClaimRecord) -> List[ClaimStatus]:
        return self.state_machine.get_valid_transitions(record)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_claim(
        self,
        provider_role: Union[ProviderRole, str],
        payload: Union[ClaimSubmission, Dict[str, Any]],
    ) -> WorkflowResult:
        """
        Create a record in the initial status for its kind.

        Raises:
            ClaimValidationError: Unknown provider role or malformed payload
        """
        try:
            role = ProviderRole(provider_role)
        except ValueError:
            raise ClaimValidationError(f"Unknown provider role: {provider_role}")

        submission = self._parse_submission(payload)
        role_payload = parse_role_payload(role, submission.role_specific_payload)

        fulfillment_fields: Dict[str, Any] = {}
        items = payload_items(role_payload)

        if isinstance(role_payload, PharmacistPayload) and items:
            try:
                fulfillment = resolve_fulfillment(items, submission.fulfilled_item_ids)
            except ValueError as e:
                raise ClaimValidationError(str(e))
            role_payload = role_payload.model_copy(update={"items": fulfillment.items})
            amount = fulfillment.amount
            fulfillment_fields = {
                "is_partial_fulfillment": fulfillment.is_partial_fulfillment,
                "original_item_count": fulfillment.original_item_count,
                "fulfilled_item_count": fulfillment.fulfilled_item_count,
            }
            if submission.is_follow_up:
                amount = resolve_price(amount, is_follow_up=True)
        elif submission.fulfilled_item_ids is not None:
            raise ClaimValidationError("fulfilled_item_ids only applies to pharmacist claims with items")
        else:
            amount = resolve_price(
                submission.entered_price,
                submission.reference_price,
                is_follow_up=submission.is_follow_up,
            )

        if submission.reference_price is None and not submission.is_follow_up and not items:
            logger.warning(f"No reference price for {role.value} submission; using the entered price")

        record = ClaimRecord(
            kind=submission.kind,
            status=INITIAL_STATUS[submission.kind],
            provider_role=role,
            provider_name=submission.provider_name,
            client_id=submission.client_id,
            client_name=submission.client_name,
            family_member_id=submission.family_member_id,
            family_member_relation=submission.family_member_relation,
            family_member_name=submission.family_member_name,
            amount=amount,
            entered_price=submission.entered_price,
            reference_price=submission.reference_price,
            is_follow_up=submission.is_follow_up,
            diagnosis=submission.diagnosis,
            treatment_details=submission.treatment_details,
            description=submission.description,
            service_date=submission.service_date,
            role_specific_payload=role_payload,
            **fulfillment_fields,
        )
        record = record.add_audit_entry(
            actor=role.value,
            decision="SUBMITTED",
            reasoning=submission.description or "",
            to_status=record.status,
        )

        stored = self.repository.add(record)
        logger.info(
            f"Submitted {stored.kind.value} {stored.id} by {role.value} "
            f"for client {stored.client_id} (amount {stored.amount})"
        )

        events: List[DomainEvent] = [
            ClaimSubmitted(
                record_id=stored.id,
                kind=stored.kind,
                provider_role=stored.provider_role,
                amount=stored.amount,
            ),
            NotificationRequested(
                record_id=stored.id,
                recipient_role=ActorRole.MEDICAL_ADMIN.value,
                message=f"New {stored.kind.value.replace('_', ' ').lower()} {stored.id} awaits medical review",
            ),
        ]
        self._publish(events)
        return WorkflowResult(record=stored, events=events)

    @staticmethod
    def _parse_submission(payload: Union[ClaimSubmission, Dict[str, Any]]) -> ClaimSubmission:
        if isinstance(payload, ClaimSubmission):
            return payload
        try:
            return ClaimSubmission.model_validate(payload)
        except PydanticValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise ClaimValidationError("Invalid claim submission", errors=errors)

    # ------------------------------------------------------------------
    # Reviewer actions
    # ------------------------------------------------------------------

    def approve(self, record_id: str, actor_role: Union[ActorRole, str]) -> WorkflowResult:
        return self._review(record_id, actor_role, ReviewAction.APPROVE)

    def reject(self, record_id: str, actor_role: Union[ActorRole, str], reason: Optional[str]) -> WorkflowResult:
        return self._review(record_id, actor_role, ReviewAction.REJECT, reason)

    def return_for_review(
        self,
        record_id: str,
        actor_role: Union[ActorRole, str],
        reason: Optional[str],
    ) -> WorkflowResult:
        return self._review(record_id, actor_role, ReviewAction.RETURN_FOR_REVIEW, reason)

    def re_approve(self, record_id: str, actor_role: Union[ActorRole, str]) -> WorkflowResult:
        """Send a returned claim back to coordination; keeps the return reason."""
        return self._review(record_id, actor_role, ReviewAction.RE_APPROVE)

    def _review(
        self,
        record_id: str,
        actor_role: Union[ActorRole, str],
        action: ReviewAction,
        reason: Optional[str] = None,
    ) -> WorkflowResult:
        with self._exclusive(record_id):
            record = self.get(record_id)
            role = self._coerce_actor(actor_role)

            try:
                edge = resolve_edge(record.kind, action, record.status, role)
                updated = self.state_machine.transition(
                    record,
                    edge.target,
                    actor=role.value,
                    reason=reason,
                    **self._decision_fields(record, edge.target, reason),
                )
            except (InvalidTransitionError, UnauthorizedError) as e:
                e.record_id = record.id
                logger.warning(f"Refused {action.value} on {record.id} by {role.value}: {e.message}")
                raise

            events: List[DomainEvent] = [status_changed(updated)]
            updated, hook_events = self.process_monitor.on_state_entered(updated, updated.status)
            events.extend(hook_events)

            stored = self.repository.save(updated, expected_version=record.version)

        self._publish(events)
        return WorkflowResult(record=stored, events=events)

    @staticmethod
    def _coerce_actor(actor_role: Union[ActorRole, str]) -> ActorRole:
        try:
            return ActorRole(actor_role)
        except ValueError:
            raise UnauthorizedError(f"Unknown actor role: {actor_role}")

    @staticmethod
    def _decision_fields(record: ClaimRecord, target: ClaimStatus, reason: Optional[str]) -> Dict[str, Any]:
        """
        Timestamps and reason set by entering ``target``; never cleared.

        approved_at and rejected_at keep their first value. rejection_reason
        and returned_at follow the latest return or rejection.
        """
        now = datetime.now()
        reason = (reason or "").strip() or None

        if target in _APPROVED_STATUSES and record.approved_at is None:
            return {"approved_at": now}
        if target in _REJECTED_STATUSES:
            return {"rejected_at": record.rejected_at or now, "rejection_reason": reason}
        if target == ClaimStatus.RETURNED_FOR_REVIEW:
            return {"returned_at": now, "rejection_reason": reason}
        return {}

    @contextmanager
    def _exclusive(self, record_id: str) -> Iterator[None]:
        """At most one transition in flight per record."""
        with self._in_flight_lock:
            if record_id in self._in_flight:
                raise TransitionInProgressError(
                    f"Another transition for claim {record_id} is still in progress",
                    record_id=record_id,
                )
            self._in_flight.add(record_id)
        try:
            yield
        finally:
            with self._in_flight_lock:
                self._in_flight.discard(record_id)

    def _publish(self, events: List[DomainEvent]) -> None:
        if self._publisher is None:
            return
        for event in events:
            self._publisher(event)
