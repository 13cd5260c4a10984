import pytest
from fastapi.testclient import TestClient

from recurrence_engine.main import app
from recurrence_engine.routers.recurring_tasks import get_recurring_task_service
from tests.conftest import ORG

BASE = f"/api/{ORG}/recurring-tasks"


@pytest.fixture
def client(service):
    app.dependency_overrides[get_recurring_task_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def create(client, **overrides):
    payload = {
        "title": "Rotate API keys",
        "pattern": "monthly",
        "anchor_day_of_month": 31,
        "first_due": "2024-01-31T00:00:00",
        "priority": "high",
    }
    payload.update(overrides)
    return client.post(BASE, json=payload)


def test_health_and_metrics(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert "occurrences_materialized_total" in client.get("/metrics").json()["counters"]


def test_create_and_list(client):
    response = create(client)
    assert response.status_code == 201
    body = response.json()
    assert body["pattern"] == "monthly"
    assert body["next_due"] == "2024-01-31T00:00:00"
    assert body["occurrences_emitted"] == 0

    listed = client.get(BASE).json()
    assert [t["id"] for t in listed] == [body["id"]]
    assert client.get(f"{BASE}/{body['id']}").json()["title"] == "Rotate API keys"


@pytest.mark.parametrize(
    "overrides",
    [
        {"pattern": "hourly"},
        {"anchor_day_of_month": 32},
        {"interval": 0},
        {"anchor_day_of_week": 7, "pattern": "weekly"},
        {"priority": "urgent"},
    ],
)
def test_create_rejects_invalid_rule(client, overrides):
    assert create(client, **overrides).status_code == 422


def test_end_before_first_due_is_invalid_rule(client):
    response = create(client, end_at="2023-12-31T00:00:00")
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_RULE"


def test_process_skip_and_history(client):
    template_id = create(client).json()["id"]

    report = client.post(f"{BASE}/process").json()
    assert len(report["materialized"]) == 1

    skipped = client.post(f"{BASE}/{template_id}/skip", json={"reason": "holiday"})
    assert skipped.status_code == 200
    assert skipped.json()["next_due"] == "2024-03-31T00:00:00"

    history = client.get(f"{BASE}/{template_id}/history").json()
    assert [(h["occurrence_number"], h["skipped"]) for h in history] == [(2, True), (1, False)]
    assert history[0]["skip_reason"] == "holiday"

    occurrences = client.get(f"{BASE}/{template_id}/occurrences").json()
    assert [o["due_at"] for o in occurrences] == ["2024-01-31T00:00:00"]
    assert occurrences[0]["template_id"] == template_id


def test_pause_resume(client, clock):
    template_id = create(client).json()["id"]

    assert client.post(f"{BASE}/{template_id}/pause").json()["next_due"] is None
    assert client.post(f"{BASE}/{template_id}/skip").status_code == 409

    resumed = client.post(f"{BASE}/{template_id}/resume", json={})
    assert resumed.json()["next_due"] == clock.now.isoformat()

    resumed = client.post(f"{BASE}/{template_id}/resume", json={"resume_from": "2024-06-01T08:00:00"})
    assert resumed.json()["next_due"] == "2024-06-01T08:00:00"


def test_unknown_template_is_404(client):
    response = client.get(f"{BASE}/404/history")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"
    assert client.post("/api/other-org/recurring-tasks/1/pause").status_code == 404


def test_create_converts_utc_designator(client):
    body = create(client, first_due="2024-01-31T00:00:00Z").json()
    assert body["next_due"] == "2024-01-31T00:00:00"


def test_create_converts_offset_to_utc(client):
    body = create(client, first_due="2024-01-31T05:30:00+05:30").json()
    assert body["next_due"] == "2024-01-31T00:00:00"


def test_create_with_aware_and_naive_pair(client):
    response = create(client, first_due="2024-01-31T00:00:00Z", end_at="2024-06-01T00:00:00")
    assert response.status_code == 201
    assert response.json()["end_at"] == "2024-06-01T00:00:00"

    response = create(client, first_due="2024-01-31T00:00:00", end_at="2024-01-31T03:00:00+05:00")
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INVALID_RULE"


def test_resume_from_offset_is_stored_as_utc(client):
    template_id = create(client).json()["id"]
    client.post(f"{BASE}/{template_id}/pause")

    resumed = client.post(f"{BASE}/{template_id}/resume", json={"resume_from": "2024-06-01T08:00:00+05:00"})

    assert resumed.status_code == 200
    assert resumed.json()["next_due"] == "2024-06-01T03:00:00"
