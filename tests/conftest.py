"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List

import pytest

from claimflow.core.models import ClaimRecord
from claimflow.core.states import ClaimStatus, ProviderRole, RecordKind
from claimflow.state_machine.machine import ClaimStateMachine
from claimflow.workflow.repository import InMemoryClaimRepository
from claimflow.workflow.service import WorkflowService

# --- Test constants ---
DEFAULT_CLIENT_ID = "C-100"
DEFAULT_CLIENT_NAME = "Dana Levi"
DEFAULT_PROVIDER_NAME = "Dr. Avi Cohen"


# --- Workflow fixtures ---
@pytest.fixture
def repository() -> InMemoryClaimRepository:
    return InMemoryClaimRepository()


@pytest.fixture
def published() -> List[Any]:
    """Events handed to the service publisher, in order."""
    return []


@pytest.fixture
def service(repository: InMemoryClaimRepository, published: List[Any]) -> WorkflowService:
    return WorkflowService(repository, publisher=published.append)


@pytest.fixture
def state_machine() -> ClaimStateMachine:
    return ClaimStateMachine()


# --- Input fixtures ---
@pytest.fixture
def make_submission() -> Callable[..., Dict[str, Any]]:
    """Factory for submission payloads; keyword arguments override defaults."""

    def _make(**overrides: Any) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "client_id": DEFAULT_CLIENT_ID,
            "client_name": DEFAULT_CLIENT_NAME,
            "provider_name": DEFAULT_PROVIDER_NAME,
            "entered_price": "200",
            "reference_price": "150",
            "diagnosis": "Acute sinusitis",
            "service_date": "2026-03-10",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def prescription_items() -> List[Dict[str, Any]]:
    """Three prescribed items; resolved prices are 35, 20 and 50."""
    return [
        {"id": 1, "medicineName": "Amoxicillin", "finalPrice": "40", "unionPrice": "35", "dosage": "500mg"},
        {"id": 2, "medicineName": "Ibuprofen", "finalPrice": "20"},
        {"id": 3, "medicineName": "Omeprazole", "finalPrice": "50", "unionPrice": "60"},
    ]


@pytest.fixture
def make_record() -> Callable[..., ClaimRecord]:
    """Factory for stored-looking records built directly, bypassing the service."""

    def _make(**overrides: Any) -> ClaimRecord:
        data: Dict[str, Any] = {
            "kind": RecordKind.HEALTHCARE_CLAIM,
            "status": ClaimStatus.PENDING_MEDICAL,
            "provider_role": ProviderRole.DOCTOR,
            "client_id": DEFAULT_CLIENT_ID,
            "client_name": DEFAULT_CLIENT_NAME,
            "amount": Decimal("100"),
            "submitted_at": datetime(2026, 3, 1, 9, 0),
        }
        data.update(overrides)
        return ClaimRecord(**data)

    return _make
