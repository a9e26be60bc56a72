"""
Tests for the HTTP adapter.
"""
import pytest
from fastapi.testclient import TestClient

from claimflow.api.endpoints import get_workflow_service
from claimflow.main import app


@pytest.fixture
def client(service):
    app.dependency_overrides[get_workflow_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def claim_id(client, make_submission):
    response = client.post("/claims/", json={"provider_role": "DOCTOR", **make_submission()})
    assert response.status_code == 201
    return response.json()["record"]["id"]


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    assert client.get("/").json()["status"] == "operational"


def test_submit_returns_record_and_next_states(client, make_submission):
    response = client.post("/claims/", json={"provider_role": "DOCTOR", **make_submission()})

    body = response.json()
    assert response.status_code == 201
    assert body["record"]["status"] == "PENDING_MEDICAL"
    assert body["record"]["amount"] == "150"
    assert body["status_info"]["label"] == "Pending Medical Review"
    assert body["next_valid_states"] == ["APPROVED_MEDICAL", "REJECTED_MEDICAL"]
    assert [e["event_type"] for e in body["events"]] == ["CLAIM_SUBMITTED", "NOTIFICATION_REQUESTED"]


def test_invalid_submission(client, make_submission):
    data = make_submission()
    del data["client_id"]
    response = client.post("/claims/", json={"provider_role": "DOCTOR", **data})
    assert response.status_code == 422


def test_review_cycle(client, claim_id):
    response = client.post(f"/claims/{claim_id}/approve", json={"actor_role": "MEDICAL_ADMIN"})
    body = response.json()

    assert response.status_code == 200
    assert body["previous_status"] == "PENDING_MEDICAL"
    assert body["new_status"] == "PENDING_COORDINATION"

    response = client.post(
        f"/claims/{claim_id}/return-for-review",
        json={"actor_role": "COORDINATION_ADMIN", "reason": "missing invoice"},
    )
    assert response.json()["new_status"] == "RETURNED_FOR_REVIEW"

    response = client.post(f"/claims/{claim_id}/re-approve", json={"actor_role": "MEDICAL_ADMIN"})
    assert response.json()["new_status"] == "PENDING_COORDINATION"

    response = client.post(f"/claims/{claim_id}/reject", json={"actor_role": "COORDINATION_ADMIN", "reason": "duplicate"})
    assert response.json()["new_status"] == "REJECTED_FINAL"

    history = client.get(f"/claims/{claim_id}/history").json()
    assert history["current_state"] == "REJECTED_FINAL"
    assert history["state_history"][-1] == "PENDING_COORDINATION"
    assert history["audit_log"][-1]["reasoning"] == "duplicate"


@pytest.mark.parametrize(
    "path, payload, status_code, code",
    [
        ("approve", {"actor_role": "INSURANCE_CLIENT"}, 403, "Unauthorized"),
        ("approve", {"actor_role": "COORDINATION_ADMIN"}, 400, "InvalidTransition"),
        ("reject", {"actor_role": "MEDICAL_ADMIN", "reason": "  "}, 422, "MissingReason"),
        ("re-approve", {"actor_role": "MEDICAL_ADMIN"}, 400, "InvalidTransition"),
    ],
)
def test_workflow_errors_map_to_status_codes(client, claim_id, path, payload, status_code, code):
    response = client.post(f"/claims/{claim_id}/{path}", json=payload)

    assert response.status_code == status_code
    assert response.json()["detail"]["code"] == code
    assert response.json()["detail"]["record_id"] == claim_id


def test_unknown_claim_is_404(client):
    response = client.get("/claims/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NotFound"

    response = client.post("/claims/does-not-exist/approve", json={"actor_role": "MEDICAL_ADMIN"})
    assert response.status_code == 404


def test_query_endpoint(client, make_submission):
    for name in ("Avi", "Bar", "Carmel"):
        client.post("/claims/", json={"provider_role": "DOCTOR", **make_submission(client_name=name)})

    body = client.get("/claims/", params={"sort": "name-desc", "page_size": 2}).json()
    assert body["total_count"] == 3
    assert [r["client_name"] for r in body["items"]] == ["Carmel", "Bar"]

    body = client.get("/claims/", params={"q": "carm", "status": "all"}).json()
    assert [r["client_name"] for r in body["items"]] == ["Carmel"]


def test_query_endpoint_rejects_bad_ranges(client):
    response = client.get("/claims/", params={"amount_min": 10, "amount_max": 5})
    assert response.status_code == 422

    response = client.get("/claims/", params={"page_size": 1000})
    assert response.status_code == 422


def test_dashboard_summary(client, claim_id):
    client.post(f"/claims/{claim_id}/approve", json={"actor_role": "MEDICAL_ADMIN"})

    body = client.get("/claims/dashboard/summary").json()
    assert body["total"] == 1
    assert body["pending_coordination"] == 1
    assert body["by_status"]["PENDING_COORDINATION"] == 1
