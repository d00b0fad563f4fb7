from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from crimewatch.api.deps import get_now, get_snapshot
from crimewatch.core.errors import LocationQueryError
from crimewatch.schemas.analytics import RiskAssessment, RouteSafetyResponse
from crimewatch.schemas.incident import IncidentBatch
from crimewatch.services.analytics.location_match import suggest_locations
from crimewatch.services.analytics.risk import assess_location
from crimewatch.services.analytics.route_safety import score_routes

router = APIRouter(prefix="/risk", tags=["Risk"])


@router.get("/assess", response_model=RiskAssessment)
def assess(
    snapshot: IncidentBatch = Depends(get_snapshot),
    now: datetime = Depends(get_now),
    location: str = Query("", description="Place name to assess"),
):
    """Heuristic risk score for a location"""
    try:
        return assess_location(snapshot.incidents, location, now)
    except LocationQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/suggestions", response_model=List[str])
def suggestions(
    snapshot: IncidentBatch = Depends(get_snapshot),
    q: str = Query("", description="Partial location"),
    limit: int = Query(5, ge=1, le=20),
):
    """Known incident locations matching a partial query"""
    return suggest_locations(snapshot.incidents, q, limit)


@router.get("/routes", response_model=RouteSafetyResponse)
def routes(
    snapshot: IncidentBatch = Depends(get_snapshot),
    start: str = Query("", description="Start location"),
    end: str = Query("", description="End location"),
):
    """Safety scores for the safest, fastest and balanced route profiles"""
    try:
        return score_routes(snapshot.incidents, start, end)
    except LocationQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
