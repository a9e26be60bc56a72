"""
Claim State Machine

Adjacency tables for the healthcare-claim and emergency-request workflows and
the pure transition checks built on them. Role authorization is not decided
here; see claimflow.workflow.service.
"""
import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from claimflow.core.catalog import is_terminal
from claimflow.core.errors import InvalidTransitionError, MissingReasonError
from claimflow.core.models import ClaimRecord
from claimflow.core.states import ClaimStatus, RecordKind

logger = logging.getLogger(__name__)

Transitions = Dict[ClaimStatus, FrozenSet[ClaimStatus]]


class TransitionCheck(str, Enum):
    """Outcome of validating a requested status change."""
    ALLOWED = "ALLOWED"
    ILLEGAL_EDGE = "ILLEGAL_EDGE"
    REASON_REQUIRED = "REASON_REQUIRED"


HEALTHCARE_TRANSITIONS: Transitions = {
    ClaimStatus.PENDING_MEDICAL: frozenset({ClaimStatus.APPROVED_MEDICAL, ClaimStatus.REJECTED_MEDICAL}),
    ClaimStatus.APPROVED_MEDICAL: frozenset({ClaimStatus.PENDING_COORDINATION}),
    ClaimStatus.PENDING_COORDINATION: frozenset({
        ClaimStatus.APPROVED_FINAL,
        ClaimStatus.REJECTED_FINAL,
        ClaimStatus.RETURNED_FOR_REVIEW,
    }),
    # Re-approval goes straight back to coordination
    ClaimStatus.RETURNED_FOR_REVIEW: frozenset({ClaimStatus.PENDING_COORDINATION, ClaimStatus.REJECTED_MEDICAL}),
    ClaimStatus.APPROVED_FINAL: frozenset(),
    ClaimStatus.REJECTED_FINAL: frozenset(),
    ClaimStatus.REJECTED_MEDICAL: frozenset(),
}

EMERGENCY_TRANSITIONS: Transitions = {
    ClaimStatus.PENDING_MEDICAL: frozenset({ClaimStatus.APPROVED_BY_MEDICAL, ClaimStatus.REJECTED_BY_MEDICAL}),
    ClaimStatus.APPROVED_BY_MEDICAL: frozenset(),
    ClaimStatus.REJECTED_BY_MEDICAL: frozenset(),
}

TRANSITIONS: Dict[RecordKind, Transitions] = {
    RecordKind.HEALTHCARE_CLAIM: HEALTHCARE_TRANSITIONS,
    RecordKind.EMERGENCY_REQUEST: EMERGENCY_TRANSITIONS,
}

# Statuses that can only be entered with a non-empty reason
REASON_REQUIRED_TARGETS: FrozenSet[ClaimStatus] = frozenset({
    ClaimStatus.REJECTED_MEDICAL,
    ClaimStatus.REJECTED_FINAL,
    ClaimStatus.REJECTED_BY_MEDICAL,
    ClaimStatus.RETURNED_FOR_REVIEW,
})


def _merged_transitions() -> Transitions:
    merged: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {}
    for table in TRANSITIONS.values():
        for source, targets in table.items():
            merged[source] = merged.get(source, frozenset()) | targets
    return merged


_ALL_TRANSITIONS = _merged_transitions()


def transitions_for(kind: Optional[RecordKind] = None) -> Transitions:
    """Adjacency table for a kind, or the union of both when kind is None."""
    if kind is None:
        return _ALL_TRANSITIONS
    return TRANSITIONS[RecordKind(kind)]


def has_reason(reason: Optional[str]) -> bool:
    return bool(reason and reason.strip())


def requires_reason(target: ClaimStatus) -> bool:
    return ClaimStatus(target) in REASON_REQUIRED_TARGETS


def is_valid_transition(
    current: ClaimStatus,
    target: ClaimStatus,
    kind: Optional[RecordKind] = None,
) -> bool:
    """True when target is declared as a successor of current."""
    current = ClaimStatus(current)
    target = ClaimStatus(target)
    if is_terminal(current):
        return False
    return target in transitions_for(kind).get(current, frozenset())


def check_transition(
    kind: Optional[RecordKind],
    current: ClaimStatus,
    target: ClaimStatus,
    reason: Optional[str] = None,
) -> TransitionCheck:
    """
    Validate a status change, telling an illegal edge apart from a missing reason.
    """
    if not is_valid_transition(current, target, kind):
        return TransitionCheck.ILLEGAL_EDGE
    if requires_reason(target) and not has_reason(reason):
        return TransitionCheck.REASON_REQUIRED
    return TransitionCheck.ALLOWED


class ClaimStateMachine:
    """
    State machine for moving claim records between statuses.

    Records are immutable, so every transition returns a new record.
    """

    # Standard forward flow per kind, used by get_next_state / advance
    STANDARD_FLOW: Dict[RecordKind, List[ClaimStatus]] = {
        RecordKind.HEALTHCARE_CLAIM: [
            ClaimStatus.PENDING_MEDICAL,
            ClaimStatus.APPROVED_MEDICAL,
            ClaimStatus.PENDING_COORDINATION,
            ClaimStatus.APPROVED_FINAL,
        ],
        RecordKind.EMERGENCY_REQUEST: [
            ClaimStatus.PENDING_MEDICAL,
            ClaimStatus.APPROVED_BY_MEDICAL,
        ],
    }

    TRANSITIONS: Dict[RecordKind, Transitions] = TRANSITIONS

    def get_valid_transitions(self, record: ClaimRecord) -> List[ClaimStatus]:
        """Valid next statuses for a record, in declaration order."""
        allowed = self.TRANSITIONS[record.kind].get(record.status, frozenset())
        return [status for status in ClaimStatus if status in allowed]

    def can_transition(self, record: ClaimRecord, target: ClaimStatus) -> bool:
        return is_valid_transition(record.status, target, record.kind)

    def transition(
        self,
        record: ClaimRecord,
        target: ClaimStatus,
        actor: str = "SYSTEM",
        reason: Optional[str] = None,
        **changes,
    ) -> ClaimRecord:
        """
        Execute a state transition.

        Args:
            record: The record to transition
            target: The desired next status
            actor: Who performs the transition, for the audit log
            reason: Required for rejections and returns for review
            changes: Extra fields to set on the new record

        Returns:
            New record in the target status

        Raises:
            InvalidTransitionError: If the edge is not declared
            MissingReasonError: If the edge needs a reason and none was given
        """
        target = ClaimStatus(target)
        check = check_transition(record.kind, record.status, target, reason)

        if check == TransitionCheck.ILLEGAL_EDGE:
            valid = self.get_valid_transitions(record)
            raise InvalidTransitionError(
                f"Cannot move from {record.status.value} to {target.value}. "
                f"Valid transitions: {[s.value for s in valid]}",
                record_id=record.id,
            )
        if check == TransitionCheck.REASON_REQUIRED:
            raise MissingReasonError(
                f"A reason is required to move to {target.value}",
                record_id=record.id,
            )

        previous = record.status
        updated = record.record_state_change(target, **changes)
        updated = updated.add_audit_entry(
            actor=actor,
            decision=target.value,
            reasoning=(reason or "").strip(),
            from_status=previous,
            to_status=target,
        )
        logger.info(f"Record {record.id} moved {previous.value} -> {target.value} by {actor}")
        return updated

    def get_next_state(self, record: ClaimRecord) -> Optional[ClaimStatus]:
        """
        Next status along the standard flow, or the re-approval edge for a
        returned claim. None for terminal statuses.
        """
        if record.status == ClaimStatus.RETURNED_FOR_REVIEW:
            return ClaimStatus.PENDING_COORDINATION

        flow = self.STANDARD_FLOW[record.kind]
        if record.status not in flow:
            return None
        index = flow.index(record.status)
        if index + 1 >= len(flow):
            return None
        next_state = flow[index + 1]
        return next_state if self.can_transition(record, next_state) else None

    def advance(self, record: ClaimRecord, actor: str = "SYSTEM") -> ClaimRecord:
        """
        Advance the record to the next status in its standard flow.

        Raises:
            InvalidTransitionError: If there is no next status
        """
        next_state = self.get_next_state(record)

        if next_state is None:
            raise InvalidTransitionError(
                f"Cannot advance record. Current status {record.status.value} has no next step.",
                record_id=record.id,
            )

        return self.transition(record, next_state, actor=actor)
