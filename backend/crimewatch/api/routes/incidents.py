import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from crimewatch.api.deps import get_now, get_poller, get_snapshot
from crimewatch.core.errors import FeedError
from crimewatch.schemas.incident import IncidentBatch, IncidentRead
from crimewatch.services.realtime.poller import IncidentPoller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/incidents", tags=["Incidents"])


@router.get("", response_model=List[IncidentRead])
def list_incidents(
    snapshot: IncidentBatch = Depends(get_snapshot),
    now: datetime = Depends(get_now),
    crime_type: Optional[str] = Query(None, description="Filter by crime type"),
    location: Optional[str] = Query(None, description="Filter by exact location"),
    within_days: Optional[int] = Query(None, ge=0, description="Only incidents at most this many days old"),
    spatial_only: bool = Query(False, description="Only incidents with coordinates"),
    order: Literal["asc", "desc"] = Query("asc", description="asc keeps feed order, desc is newest first"),
    limit: int = Query(1000, ge=1, le=10000, description="Maximum number of results"),
):
    """List incidents from the current snapshot"""
    incidents = list(snapshot.incidents)

    if crime_type:
        incidents = [i for i in incidents if i.crime_type == crime_type]
    if location:
        incidents = [i for i in incidents if i.location == location]
    if within_days is not None:
        incidents = [
            i for i in incidents
            if (now - i.timestamp).total_seconds() // 86400 <= within_days
        ]
    if spatial_only:
        incidents = [i for i in incidents if i.is_spatial]

    if order == "desc":
        incidents.sort(key=lambda i: i.timestamp, reverse=True)

    return [IncidentRead.from_incident(i) for i in incidents[:limit]]


@router.post("/refresh")
async def refresh_incidents(poller: IncidentPoller = Depends(get_poller)):
    """Poll the incident feed now instead of waiting for the next cycle"""
    try:
        batch = await poller.poll_once()
    except FeedError as e:
        logger.warning(f"Manual refresh failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Incident feed unavailable, keeping previous snapshot: {str(e)}",
        )

    return {
        "version": batch.version,
        "incident_count": len(batch),
        "fetched_at": batch.fetched_at.isoformat() if batch.fetched_at else None,
    }
