from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

SeverityTier = Literal["low", "medium", "high"]
TrendPeriod = Literal["daily", "weekly", "monthly", "yearly"]
RiskLevel = Literal["Low", "Medium", "High"]


class Cluster(BaseModel):
    centroid_latitude: float
    centroid_longitude: float
    count: int = Field(..., ge=1)
    severity_tier: SeverityTier
    radius_m: int
    color: str


class ClusterResponse(BaseModel):
    clusters: List[Cluster]
    threshold_deg: float
    spatial_incidents: int
    total_incidents: int


class TrendBucket(BaseModel):
    label: str
    start: date
    count: int = Field(..., ge=0)


class LocationCount(BaseModel):
    location: str
    count: int


class CrimeTypeShare(BaseModel):
    crime_type: str
    count: int
    percentage: float


class TrendAnalysis(BaseModel):
    period: TrendPeriod
    buckets: List[TrendBucket]
    total_incidents: int
    trend_percentage: float
    is_increasing: bool
    avg_per_period: float
    hotspots: List[LocationCount]
    top_crime_types: List[CrimeTypeShare]


class RiskAssessment(BaseModel):
    location: str
    risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    total_incidents: int
    crime_type_counts: Dict[str, int]
    top_crime_type: Optional[str] = None
    confidence: int = Field(..., ge=0, le=95)
    recommendations: List[str]
    assessed_at: datetime


class RouteSafety(BaseModel):
    name: str
    profile: Literal["safest", "fastest", "balanced"]
    safety_score: int
    safety_label: str
    crime_incidents: int


class RouteSafetyResponse(BaseModel):
    start: str
    end: str
    start_incidents: int
    end_incidents: int
    routes: List[RouteSafety]


class DashboardStats(BaseModel):
    time_range: Literal["today", "week", "month", "year", "all"]
    total: int
    today: int
    this_week: int
    this_month: int
    filtered: int
    top_crime_types: List[CrimeTypeShare]
    top_locations: List[LocationCount]
    hourly: List[int]
    daily_trend: List[int]
    today_growth: float
