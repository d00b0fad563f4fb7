"""New-incident detection between consecutive snapshots."""
from typing import Iterable, List, Optional, Sequence

from crimewatch.schemas.incident import Incident


def new_incidents(
    previous: Sequence[Incident], current: Sequence[Incident]
) -> List[Incident]:
    """
    Incidents in `current` whose id was not in `previous`, in current order.

    The first batch after startup (empty `previous`) yields nothing, so a
    cold start does not alert on the whole feed. Records the feed sends
    without an id are keyed by their content, so editing one shows up as a
    new incident.
    """
    if not previous:
        return []
    known = {incident.id for incident in previous}
    return [incident for incident in current if incident.id not in known]


def filter_alerts(
    incidents: Iterable[Incident],
    crime_types: Optional[Iterable[str]] = None,
    near_location: Optional[str] = None,
) -> List[Incident]:
    """Keep incidents of the selected crime types near the given place."""
    selected = set(crime_types) if crime_types else None
    needle = near_location.strip().lower() if near_location else ""

    relevant = []
    for incident in incidents:
        if selected is not None and incident.crime_type not in selected:
            continue
        if needle and needle not in incident.location.lower():
            continue
        relevant.append(incident)
    return relevant
