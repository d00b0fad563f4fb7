from datetime import datetime, timezone
from typing import Optional

from fastapi import Query

from crimewatch.schemas.incident import IncidentBatch
from crimewatch.services.ingest.incident_store import get_incident_store
from crimewatch.services.realtime.poller import IncidentPoller, get_incident_poller


def get_snapshot() -> IncidentBatch:
    """Dependency for the current incident batch"""
    return get_incident_store().snapshot


def get_poller() -> IncidentPoller:
    """Dependency for the shared incident poller"""
    return get_incident_poller()


def get_now(
    now: Optional[datetime] = Query(
        None,
        description="Reference time (ISO-8601). Its UTC offset sets the calendar "
        "used for day/month boundaries. Defaults to the current UTC time.",
    ),
) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now
