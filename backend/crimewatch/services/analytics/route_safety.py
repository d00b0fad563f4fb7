"""Safety scores for the three route profiles offered between two places."""
from typing import Sequence

from crimewatch.core.errors import LocationQueryError
from crimewatch.schemas.analytics import RouteSafety, RouteSafetyResponse
from crimewatch.schemas.incident import Incident
from crimewatch.services.analytics.location_match import matching_incidents
from crimewatch.services.analytics.tallies import round_half_up

# name, profile, score floor, penalty per incident, incident offset
ROUTE_PROFILES = (
    ("Safest Route", "safest", 70, 2, -2),
    ("Fastest Route", "fastest", 50, 5, 4),
    ("Balanced Route", "balanced", 60, 3, 0),
)


def safety_label(score: int) -> str:
    if score >= 85:
        return "Very Safe"
    if score >= 70:
        return "Moderately Safe"
    return "Use Caution"


def score_routes(
    incidents: Sequence[Incident], start: str, end: str
) -> RouteSafetyResponse:
    """
    Score route profiles from the incident counts at both endpoints.

    Only the endpoints are matched; no path geometry is involved.
    """
    start = (start or "").strip()
    end = (end or "").strip()
    if not start or not end:
        raise LocationQueryError("Please enter both start and end locations")

    start_count = len(matching_incidents(incidents, start))
    end_count = len(matching_incidents(incidents, end))
    base = max(1, int(round_half_up((start_count + end_count) / 2)))

    routes = []
    for name, profile, floor, penalty, offset in ROUTE_PROFILES:
        score = max(floor, 100 - base * penalty)
        routes.append(
            RouteSafety(
                name=name,
                profile=profile,
                safety_score=score,
                safety_label=safety_label(score),
                crime_incidents=max(0, base + offset),
            )
        )

    return RouteSafetyResponse(
        start=start,
        end=end,
        start_incidents=start_count,
        end_incidents=end_count,
        routes=routes,
    )
