"""
Tests for the transition tables, the validator and ClaimStateMachine.
"""
import itertools

import pytest

from claimflow.core.catalog import is_terminal
from claimflow.core.errors import InvalidTransitionError, MissingReasonError
from claimflow.core.states import ClaimStatus, RecordKind
from claimflow.state_machine.machine import (
    TransitionCheck,
    check_transition,
    is_valid_transition,
    transitions_for,
)


@pytest.mark.parametrize("kind", list(RecordKind))
def test_only_declared_edges_are_valid(kind):
    table = transitions_for(kind)
    for current, target in itertools.product(ClaimStatus, repeat=2):
        expected = target in table.get(current, frozenset())
        assert is_valid_transition(current, target, kind) is expected, (current, target)


def test_terminal_origin_is_never_valid():
    for current, target in itertools.product(ClaimStatus, repeat=2):
        if is_terminal(current):
            assert not is_valid_transition(current, target)


def test_kind_scopes_edges():
    assert is_valid_transition(ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_MEDICAL, RecordKind.HEALTHCARE_CLAIM)
    assert not is_valid_transition(ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_MEDICAL, RecordKind.EMERGENCY_REQUEST)
    assert is_valid_transition(ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_BY_MEDICAL)


@pytest.mark.parametrize("reason", [None, "", "   ", "\t\n"])
def test_rejection_needs_a_reason(reason):
    check = check_transition(
        RecordKind.HEALTHCARE_CLAIM,
        ClaimStatus.PENDING_COORDINATION,
        ClaimStatus.REJECTED_FINAL,
        reason,
    )
    assert check == TransitionCheck.REASON_REQUIRED


def test_illegal_edge_wins_over_missing_reason():
    check = check_transition(RecordKind.EMERGENCY_REQUEST, ClaimStatus.PENDING_MEDICAL, ClaimStatus.REJECTED_FINAL)
    assert check == TransitionCheck.ILLEGAL_EDGE


def test_approval_needs_no_reason():
    check = check_transition(RecordKind.HEALTHCARE_CLAIM, ClaimStatus.PENDING_COORDINATION, ClaimStatus.APPROVED_FINAL)
    assert check == TransitionCheck.ALLOWED


def test_transition_records_history_and_audit(make_record, state_machine):
    record = make_record()

    updated = state_machine.transition(record, ClaimStatus.APPROVED_MEDICAL, actor="MEDICAL_ADMIN")

    assert updated.status == ClaimStatus.APPROVED_MEDICAL
    assert updated.status_history == (ClaimStatus.PENDING_MEDICAL,)
    entry = updated.audit_log[-1]
    assert entry.actor == "MEDICAL_ADMIN"
    assert entry.from_status == ClaimStatus.PENDING_MEDICAL
    assert entry.to_status == ClaimStatus.APPROVED_MEDICAL
    # The original record is untouched
    assert record.status == ClaimStatus.PENDING_MEDICAL
    assert record.audit_log == ()


def test_transition_rejects_undeclared_edge(make_record, state_machine):
    record = make_record()
    with pytest.raises(InvalidTransitionError) as exc:
        state_machine.transition(record, ClaimStatus.APPROVED_FINAL)
    assert exc.value.code == "InvalidTransition"
    assert exc.value.record_id == record.id


def test_transition_rejects_blank_reason(make_record, state_machine):
    record = make_record()
    with pytest.raises(MissingReasonError):
        state_machine.transition(record, ClaimStatus.REJECTED_MEDICAL, reason="  ")


def test_transition_strips_reason(make_record, state_machine):
    record = make_record()
    updated = state_machine.transition(record, ClaimStatus.REJECTED_MEDICAL, reason="  duplicate claim ")
    assert updated.audit_log[-1].reasoning == "duplicate claim"


def test_valid_transitions_in_declaration_order(make_record, state_machine):
    record = make_record(status=ClaimStatus.PENDING_COORDINATION)
    assert state_machine.get_valid_transitions(record) == [
        ClaimStatus.APPROVED_FINAL,
        ClaimStatus.REJECTED_FINAL,
        ClaimStatus.RETURNED_FOR_REVIEW,
    ]


def test_next_state_follows_standard_flow(make_record, state_machine):
    assert state_machine.get_next_state(make_record()) == ClaimStatus.APPROVED_MEDICAL
    assert state_machine.get_next_state(make_record(status=ClaimStatus.APPROVED_MEDICAL)) == ClaimStatus.PENDING_COORDINATION
    assert state_machine.get_next_state(make_record(status=ClaimStatus.RETURNED_FOR_REVIEW)) == ClaimStatus.PENDING_COORDINATION
    assert state_machine.get_next_state(make_record(status=ClaimStatus.APPROVED_FINAL)) is None
    emergency = make_record(kind=RecordKind.EMERGENCY_REQUEST)
    assert state_machine.get_next_state(emergency) == ClaimStatus.APPROVED_BY_MEDICAL


def test_advance_from_terminal_fails(make_record, state_machine):
    with pytest.raises(InvalidTransitionError):
        state_machine.advance(make_record(status=ClaimStatus.REJECTED_FINAL))
