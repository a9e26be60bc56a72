"""
Tests for the status-entry hooks.
"""
from claimflow.core.events import NotificationRequested, StatusChanged
from claimflow.core.states import ActorRole, ClaimStatus, ProviderRole
from claimflow.monitors.process_monitor import ProcessMonitor


def test_medical_approval_is_forwarded_to_coordination(make_record, state_machine):
    monitor = ProcessMonitor(state_machine)
    approved = state_machine.transition(make_record(), ClaimStatus.APPROVED_MEDICAL, actor="MEDICAL_ADMIN")

    forwarded, events = monitor.on_state_entered(approved, approved.status)

    assert forwarded.status == ClaimStatus.PENDING_COORDINATION
    assert forwarded.status_history == (ClaimStatus.PENDING_MEDICAL, ClaimStatus.APPROVED_MEDICAL)
    assert isinstance(events[0], StatusChanged)
    assert events[0].from_status == ClaimStatus.APPROVED_MEDICAL
    assert events[0].to_status == ClaimStatus.PENDING_COORDINATION
    assert events[0].actor == "SYSTEM"
    assert isinstance(events[1], NotificationRequested)
    assert events[1].recipient_role == ActorRole.COORDINATION_ADMIN.value


def test_returned_claim_notifies_medical(make_record, state_machine):
    monitor = ProcessMonitor(state_machine)
    record = make_record(status=ClaimStatus.RETURNED_FOR_REVIEW, rejection_reason="missing invoice")

    same, events = monitor.on_state_entered(record, record.status)

    assert same is record
    assert len(events) == 1
    assert events[0].recipient_role == ActorRole.MEDICAL_ADMIN.value
    assert "missing invoice" in events[0].message


def test_decision_notifies_provider_and_client(make_record, state_machine):
    monitor = ProcessMonitor(state_machine)
    record = make_record(provider_role=ProviderRole.PHARMACIST, status=ClaimStatus.APPROVED_FINAL)

    _, events = monitor.on_state_entered(record, record.status)

    assert [(e.recipient_role, e.recipient_id) for e in events] == [
        ("PHARMACIST", None),
        ("INSURANCE_CLIENT", record.client_id),
    ]


def test_custom_handler_runs_after_defaults(make_record, state_machine):
    monitor = ProcessMonitor(state_machine)
    seen = []

    def audit_hook(record):
        seen.append(record.status)
        return record, []

    monitor.register_handler(ClaimStatus.PENDING_COORDINATION, audit_hook)
    approved = state_machine.transition(make_record(), ClaimStatus.APPROVED_MEDICAL)
    monitor.on_state_entered(approved, approved.status)

    assert seen == [ClaimStatus.PENDING_COORDINATION]


def test_status_without_hooks_is_untouched(make_record, state_machine):
    monitor = ProcessMonitor(state_machine)
    record = make_record()
    assert monitor.on_state_entered(record, record.status) == (record, [])
