"""Greedy proximity clustering of incidents into hotspots"""
import numpy as np
from typing import Iterable, List, Optional

from crimewatch.core.config import get_settings
from crimewatch.schemas.analytics import Cluster
from crimewatch.schemas.incident import Incident

# (min count, tier, render radius in meters, color), checked top-down
SEVERITY_TIERS = (
    (10, "high", 1000, "red"),
    (5, "medium", 700, "yellow"),
    (0, "low", 300, "green"),
)


def severity_for_count(count: int) -> tuple:
    """Return (tier, radius_m, color) for a cluster size."""
    for min_count, tier, radius_m, color in SEVERITY_TIERS:
        if count >= min_count:
            return tier, radius_m, color
    return SEVERITY_TIERS[-1][1:]


def cluster_incidents(
    incidents: Iterable[Incident],
    threshold_deg: Optional[float] = None,
) -> List[Cluster]:
    """
    Group spatial incidents into hotspots in a single pass.

    Each incident joins the first existing cluster (in creation order) whose
    anchor lies strictly closer than the threshold, measured as Euclidean
    distance in raw lat/lng degrees. Otherwise it seeds a new cluster anchored
    at its own coordinates. Anchors never move once set.
    """
    threshold = threshold_deg if threshold_deg is not None else get_settings().cluster_threshold_deg

    anchors: List[tuple] = []
    counts: List[int] = []
    anchor_arr = np.empty((0, 2))

    for incident in incidents:
        if not incident.is_spatial:
            continue

        if counts:
            distances = np.hypot(
                anchor_arr[:, 0] - incident.latitude,
                anchor_arr[:, 1] - incident.longitude,
            )
            within = np.flatnonzero(distances < threshold)
            if within.size:
                counts[int(within[0])] += 1
                continue

        anchors.append((incident.latitude, incident.longitude))
        counts.append(1)
        anchor_arr = np.array(anchors, dtype=float)

    clusters = []
    for (lat, lng), count in zip(anchors, counts):
        tier, radius_m, color = severity_for_count(count)
        clusters.append(
            Cluster(
                centroid_latitude=lat,
                centroid_longitude=lng,
                count=count,
                severity_tier=tier,
                radius_m=radius_m,
                color=color,
            )
        )
    return clusters
