"""Heuristic location risk assessment.

The score is a relative frequency (share of the batch matching the location,
scaled by 1000 and capped at 100), not a probability. Confidence grows by five
points per matched incident from a base of 60 and caps at 95; it is not a
statistical confidence interval. Both formulas are kept exactly as the mobile
app has always shown them.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from crimewatch.core.errors import LocationQueryError
from crimewatch.schemas.analytics import RiskAssessment
from crimewatch.schemas.incident import Incident
from crimewatch.services.analytics.location_match import matching_incidents
from crimewatch.services.analytics.tallies import round_half_up, top_counts
from crimewatch.services.analytics.temporal import ensure_aware

logger = logging.getLogger(__name__)

HIGH_RISK_ABOVE = 70
MEDIUM_RISK_ABOVE = 40

RECOMMENDATIONS: Dict[str, List[str]] = {
    "High": [
        "Avoid this area during late hours",
        "Travel in groups when possible",
        "Keep emergency contacts ready",
    ],
    "Medium": [
        "Stay alert and aware of surroundings",
        "Extra caution during nighttime",
        "Stick to well-lit areas",
    ],
    "Low": [
        "Generally safe area",
        "Maintain normal vigilance",
        "Good location for activities",
    ],
}


def risk_score(matched: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, int(round_half_up(matched / total * 1000)))


def risk_level(score: int) -> str:
    if score > HIGH_RISK_ABOVE:
        return "High"
    if score > MEDIUM_RISK_ABOVE:
        return "Medium"
    return "Low"


def confidence(matched: int) -> int:
    if matched <= 0:
        return 0
    return min(95, 60 + matched * 5)


def recommendations(level: str, top_crime_type: Optional[str]) -> List[str]:
    lines = list(RECOMMENDATIONS[level])
    if top_crime_type:
        lines.append(f"Most common: {top_crime_type} - Take precautions")
    return lines


def assess_location(
    incidents: Sequence[Incident], query: str, now: datetime
) -> RiskAssessment:
    """
    Assess a free-text location against the whole incident batch.

    Args:
        incidents: Current incident batch
        query: Location typed by the user
        now: Assessment time stamped on the result

    Returns:
        RiskAssessment

    Raises:
        LocationQueryError: If the query is blank
    """
    location = (query or "").strip()
    if not location:
        raise LocationQueryError("Please enter a location")

    matches = matching_incidents(incidents, location)
    matched = len(matches)
    score = risk_score(matched, len(incidents))
    level = risk_level(score)

    type_counts = dict(Counter(i.crime_type for i in matches))
    top = top_counts((i.crime_type for i in matches), 1)
    top_type = top[0][0] if top else None

    logger.info(
        f"Risk assessment for '{location}': {matched}/{len(incidents)} incidents, "
        f"score {score} ({level})"
    )

    return RiskAssessment(
        location=location,
        risk_score=score,
        risk_level=level,
        total_incidents=matched,
        crime_type_counts=type_counts,
        top_crime_type=top_type,
        confidence=confidence(matched),
        recommendations=recommendations(level, top_type),
        assessed_at=ensure_aware(now),
    )
