from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from crimewatch.api.deps import get_now, get_snapshot
from crimewatch.core.config import get_settings
from crimewatch.schemas.analytics import ClusterResponse, DashboardStats, TrendAnalysis
from crimewatch.schemas.incident import IncidentBatch
from crimewatch.services.analytics.clustering import cluster_incidents
from crimewatch.services.analytics.dashboard import dashboard_stats
from crimewatch.services.analytics.temporal import analyze_trends

router = APIRouter(prefix="/analytics", tags=["Analytics"])
settings = get_settings()


@router.get("/clusters", response_model=ClusterResponse)
def get_clusters(
    snapshot: IncidentBatch = Depends(get_snapshot),
    threshold: Optional[float] = Query(
        None, gt=0.0, le=1.0, description="Cluster distance threshold in degrees"
    ),
):
    """Hotspot clusters over the current snapshot"""
    threshold_deg = threshold or settings.cluster_threshold_deg
    clusters = cluster_incidents(snapshot.incidents, threshold_deg)
    return ClusterResponse(
        clusters=clusters,
        threshold_deg=threshold_deg,
        spatial_incidents=sum(1 for i in snapshot.incidents if i.is_spatial),
        total_incidents=len(snapshot),
    )


@router.get("/trends", response_model=TrendAnalysis)
def get_trends(
    snapshot: IncidentBatch = Depends(get_snapshot),
    now: datetime = Depends(get_now),
    period: Literal["daily", "weekly", "monthly", "yearly"] = Query("daily"),
):
    """Period buckets, trend and top hotspots/crime types"""
    return analyze_trends(snapshot.incidents, period, now)


@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard(
    snapshot: IncidentBatch = Depends(get_snapshot),
    now: datetime = Depends(get_now),
    time_range: Literal["today", "week", "month", "year", "all"] = Query("all"),
):
    """Headline counters and breakdowns for the dashboard"""
    return dashboard_stats(snapshot.incidents, now, time_range)
