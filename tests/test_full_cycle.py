"""
End-to-end workflow scenarios through WorkflowService.
"""
from decimal import Decimal

import pytest

from claimflow.core.errors import InvalidTransitionError, MissingReasonError
from claimflow.core.states import ActorRole, ClaimStatus, ProviderRole
from claimflow.query.engine import QuerySpec, SortKey


def test_pharmacist_claim_with_partial_fulfillment(service, make_submission, prescription_items):
    """Three prescribed items, two dispensed."""
    data = make_submission(
        role_specific_payload={"prescriptionId": "RX-17", "doctorName": "Dr. Cohen", "items": prescription_items},
        fulfilled_item_ids=["1", "3"],
    )

    record = service.submit_claim(ProviderRole.PHARMACIST, data).record

    assert record.is_partial_fulfillment is True
    assert record.original_item_count == 3
    assert record.fulfilled_item_count == 2
    # min(40, 35) + min(50, 60)
    assert record.amount == Decimal("85")

    approved = service.approve(record.id, ActorRole.MEDICAL_ADMIN).record
    final = service.approve(approved.id, ActorRole.COORDINATION_ADMIN).record
    assert final.status == ClaimStatus.APPROVED_FINAL
    assert final.amount == Decimal("85")


def test_emergency_request_rejection(service, make_submission):
    record = service.submit_claim(ProviderRole.DOCTOR, make_submission(kind="EMERGENCY_REQUEST")).record

    with pytest.raises(MissingReasonError):
        service.reject(record.id, "MEDICAL_ADMIN", "")

    rejected = service.reject(record.id, "MEDICAL_ADMIN", "insufficient evidence").record
    assert rejected.status == ClaimStatus.REJECTED_BY_MEDICAL
    assert rejected.rejection_reason == "insufficient evidence"

    with pytest.raises(InvalidTransitionError):
        service.approve(record.id, "MEDICAL_ADMIN")


def test_return_for_review_and_re_approval(service, make_submission):
    claim = service.submit_claim(ProviderRole.DOCTOR, make_submission(client_name="Returned")).record
    service.approve(claim.id, ActorRole.MEDICAL_ADMIN)

    returned = service.return_for_review(claim.id, ActorRole.COORDINATION_ADMIN, "missing invoice").record
    assert returned.status == ClaimStatus.RETURNED_FOR_REVIEW

    newer = service.submit_claim(ProviderRole.DOCTOR, make_submission(client_name="Newer")).record
    assert newer.submitted_at >= returned.submitted_at

    page = service.query(QuerySpec(sort_key=SortKey.NEWEST_FIRST)).items
    assert [r.id for r in page] == [claim.id, newer.id]

    re_approved = service.re_approve(claim.id, ActorRole.MEDICAL_ADMIN).record
    assert re_approved.status == ClaimStatus.PENDING_COORDINATION
    assert re_approved.rejection_reason == "missing invoice"
    assert re_approved.status_history == (
        ClaimStatus.PENDING_MEDICAL,
        ClaimStatus.APPROVED_MEDICAL,
        ClaimStatus.PENDING_COORDINATION,
        ClaimStatus.RETURNED_FOR_REVIEW,
    )
    decisions = [entry.decision for entry in re_approved.audit_log]
    assert decisions == [
        "SUBMITTED",
        "APPROVED_MEDICAL",
        "PENDING_COORDINATION",
        "RETURNED_FOR_REVIEW",
        "PENDING_COORDINATION",
    ]
