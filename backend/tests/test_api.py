from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from crimewatch.api.deps import get_poller
from crimewatch.core.errors import FeedError
from crimewatch.main import app
from crimewatch.services.ingest.incident_store import IncidentStore
from crimewatch.services.realtime.poller import IncidentPoller

client = TestClient(app)

NOW = "2024-01-10T12:00:00Z"
INGESTED_AT = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)

RECORDS = [
    {"_id": "1", "crime_type": "Theft", "location": "Guindy", "latitude": 13.0, "longitude": 80.22, "date": "2024-01-10T09:00:00Z"},
    {"_id": "2", "crime_type": "Robbery", "location": "Guindy Signal", "latitude": 13.001, "longitude": 80.221, "date": "2024-01-09T22:00:00Z"},
    {"_id": "3", "crime_type": "Theft", "location": "Anna Nagar", "latitude": 13.08, "longitude": 80.21, "date": "2024-01-02T08:00:00Z"},
    {"_id": "4", "crime_type": "Fraud", "location": "Adyar", "date": "2023-12-01T08:00:00Z"},
]


@pytest.fixture
def loaded_store(fresh_store):
    fresh_store.replace(IncidentStore.ingest(RECORDS, INGESTED_AT), fetched_at=INGESTED_AT)
    return fresh_store


@pytest.fixture
def override_poller():
    def _override(poller):
        app.dependency_overrides[get_poller] = lambda: poller
        return poller

    yield _override
    app.dependency_overrides.pop(get_poller, None)


def make_poller(store, feed_client):
    return IncidentPoller(store=store, feed_client=feed_client, snapshot_cache=MagicMock())


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health_check(loaded_store, override_poller):
    """Test health check endpoint"""
    override_poller(make_poller(loaded_store, MagicMock()))
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["feed"] == "ok"
    assert body["cache"] == "disabled"
    assert body["poller"]["incident_count"] == 4
    assert body["websocket_clients"] == 0


def test_health_before_first_poll(fresh_store, override_poller):
    override_poller(make_poller(fresh_store, MagicMock()))
    assert client.get("/api/v1/health").json()["feed"] == "waiting"


def test_list_incidents(loaded_store):
    """Test incidents list endpoint"""
    response = client.get("/api/v1/incidents")
    assert response.status_code == 200
    body = response.json()
    assert [i["id"] for i in body] == ["1", "2", "3", "4"]
    assert body[0]["is_spatial"] is True
    assert body[3]["is_spatial"] is False


def test_filter_incidents(loaded_store):
    response = client.get("/api/v1/incidents", params={"crime_type": "Theft"})
    assert [i["id"] for i in response.json()] == ["1", "3"]

    response = client.get("/api/v1/incidents", params={"within_days": 7, "now": NOW})
    assert [i["id"] for i in response.json()] == ["1", "2"]

    response = client.get("/api/v1/incidents", params={"spatial_only": True, "order": "desc", "limit": 2})
    assert [i["id"] for i in response.json()] == ["1", "2"]


def test_clusters(loaded_store):
    response = client.get("/api/v1/analytics/clusters")
    assert response.status_code == 200
    body = response.json()
    assert body["spatial_incidents"] == 3
    assert body["total_incidents"] == 4
    assert [c["count"] for c in body["clusters"]] == [2, 1]


def test_invalid_cluster_threshold(loaded_store):
    assert client.get("/api/v1/analytics/clusters", params={"threshold": 0}).status_code == 422


def test_trends(loaded_store):
    response = client.get("/api/v1/analytics/trends", params={"period": "daily", "now": NOW})
    assert response.status_code == 200
    body = response.json()
    assert [b["count"] for b in body["buckets"]] == [0, 0, 0, 0, 0, 1, 1]
    assert body["total_incidents"] == 2


def test_unknown_period(loaded_store):
    assert client.get("/api/v1/analytics/trends", params={"period": "hourly"}).status_code == 422


def test_dashboard(loaded_store):
    response = client.get("/api/v1/analytics/dashboard", params={"now": NOW, "time_range": "week"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert body["today"] == 1
    assert body["filtered"] == 2
    assert len(body["hourly"]) == 24


def test_risk_assessment(loaded_store):
    response = client.get("/api/v1/risk/assess", params={"location": "guindy", "now": NOW})
    assert response.status_code == 200
    body = response.json()
    assert body["total_incidents"] == 2
    assert body["risk_score"] == 100
    assert body["risk_level"] == "High"
    assert body["confidence"] == 70


def test_blank_location_is_rejected(loaded_store):
    response = client.get("/api/v1/risk/assess", params={"location": "  "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a location"


def test_suggestions(loaded_store):
    response = client.get("/api/v1/risk/suggestions", params={"q": "gui"})
    assert response.json() == ["Guindy", "Guindy Signal"]


def test_route_safety(loaded_store):
    response = client.get("/api/v1/risk/routes", params={"start": "Guindy", "end": "Adyar"})
    assert response.status_code == 200
    assert len(response.json()["routes"]) == 3

    assert client.get("/api/v1/risk/routes", params={"start": "Guindy"}).status_code == 400


def test_refresh(fresh_store, override_poller):
    feed = MagicMock()
    feed.fetch.return_value = RECORDS
    override_poller(make_poller(fresh_store, feed))

    response = client.post("/api/v1/incidents/refresh")
    assert response.status_code == 200
    assert response.json()["incident_count"] == 4
    assert response.json()["version"] == 1


def test_refresh_feed_failure(loaded_store, override_poller):
    feed = MagicMock()
    feed.fetch.side_effect = FeedError("feed down")
    override_poller(make_poller(loaded_store, feed))

    response = client.post("/api/v1/incidents/refresh")
    assert response.status_code == 502
    assert loaded_store.snapshot.version == 1


def test_websocket_sends_initial_snapshot(loaded_store):
    with client.websocket_connect("/api/v1/realtime/incidents") as websocket:
        message = websocket.receive_json()
        connected = client.get("/api/v1/health").json()["websocket_clients"]

    assert message["type"] == "snapshot"
    assert message["data"]["incident_count"] == 4
    assert message["data"]["version"] == 1
    assert connected == 1
