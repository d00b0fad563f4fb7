import os

# Keep the app from reaching the network or Redis during tests
os.environ.setdefault("POLLING_ENABLED", "false")
os.environ.setdefault("SNAPSHOT_CACHE_ENABLED", "false")
os.environ.setdefault("REALTIME_ENABLED", "true")

from datetime import datetime, timezone

import pytest

from crimewatch.schemas.incident import Incident
from crimewatch.services.ingest import incident_store


@pytest.fixture
def make_incident():
    """Factory for incidents with sensible defaults"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "id": f"c{counter['n']}",
            "crime_type": "Robbery",
            "location": "Guindy",
            "latitude": None,
            "longitude": None,
            "timestamp": datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return Incident(**fields)

    return _make


@pytest.fixture
def fresh_store(monkeypatch):
    """Replace the singleton incident store with an empty one"""
    store = incident_store.IncidentStore()
    monkeypatch.setattr(incident_store, "_store", store)
    return store
