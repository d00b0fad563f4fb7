"""Period bucketing and trend analysis over the incident batch"""
import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from crimewatch.schemas.analytics import (
    CrimeTypeShare,
    LocationCount,
    TrendAnalysis,
    TrendBucket,
)
from crimewatch.schemas.incident import Incident
from crimewatch.services.analytics.tallies import percentage, round_half_up, top_counts

logger = logging.getLogger(__name__)

PERIODS = ("daily", "weekly", "monthly", "yearly")

DAYS_IN_DAILY_VIEW = 7
WEEKS_IN_WEEKLY_VIEW = 8
MONTHS_IN_MONTHLY_VIEW = 12
YEARS_IN_YEARLY_VIEW = 5
TOP_N = 5


def ensure_aware(now: datetime) -> datetime:
    """Naive "now" values are taken as UTC."""
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def local_time(incident: Incident, now: datetime) -> datetime:
    """Incident timestamp expressed in the timezone of `now`."""
    return incident.timestamp.astimezone(now.tzinfo)


def _month_shift(year: int, month: int, offset: int) -> Tuple[int, int]:
    y, m = divmod(year * 12 + (month - 1) + offset, 12)
    return y, m + 1


def _daily_buckets(now: datetime):
    today = now.date()
    days = [today - timedelta(days=i) for i in range(DAYS_IN_DAILY_VIEW - 1, -1, -1)]
    specs = [(d.strftime("%a"), d) for d in days]
    index = {d: i for i, d in enumerate(days)}

    def key(incident: Incident) -> Optional[int]:
        return index.get(local_time(incident, now).date())

    return specs, key


def _weekly_buckets(now: datetime):
    week = timedelta(days=7)
    window_start = now - week * WEEKS_IN_WEEKLY_VIEW
    specs = []
    for i in range(WEEKS_IN_WEEKLY_VIEW - 1, -1, -1):
        start = now - week * (i + 1)
        specs.append((f"W{WEEKS_IN_WEEKLY_VIEW - i}", start.date()))

    def key(incident: Incident) -> Optional[int]:
        ts = incident.timestamp
        if ts < window_start or ts >= now:
            return None
        return int((ts - window_start) // week)

    return specs, key


def _monthly_buckets(now: datetime):
    months = [
        _month_shift(now.year, now.month, -i)
        for i in range(MONTHS_IN_MONTHLY_VIEW - 1, -1, -1)
    ]
    specs = [(calendar.month_abbr[m], date(y, m, 1)) for y, m in months]
    index = {ym: i for i, ym in enumerate(months)}

    def key(incident: Incident) -> Optional[int]:
        ts = local_time(incident, now)
        return index.get((ts.year, ts.month))

    return specs, key


def _yearly_buckets(now: datetime):
    years = [now.year - i for i in range(YEARS_IN_YEARLY_VIEW - 1, -1, -1)]
    specs = [(str(y), date(y, 1, 1)) for y in years]
    index = {y: i for i, y in enumerate(years)}

    def key(incident: Incident) -> Optional[int]:
        return index.get(local_time(incident, now).year)

    return specs, key


_BUCKET_BUILDERS: Dict[str, Callable] = {
    "daily": _daily_buckets,
    "weekly": _weekly_buckets,
    "monthly": _monthly_buckets,
    "yearly": _yearly_buckets,
}


def bucket_incidents(
    incidents: Sequence[Incident], period: str, now: datetime
) -> Tuple[List[TrendBucket], List[Incident]]:
    """
    Split incidents into the period's buckets.

    Returns the buckets (oldest first) and the in-window incidents, grouped
    bucket by bucket in the same order.
    """
    if period not in _BUCKET_BUILDERS:
        raise ValueError(f"Unknown period '{period}', expected one of {', '.join(PERIODS)}")

    now = ensure_aware(now)
    specs, key = _BUCKET_BUILDERS[period](now)

    members: List[List[Incident]] = [[] for _ in specs]
    for incident in incidents:
        idx = key(incident)
        if idx is not None:
            members[idx].append(incident)

    buckets = [
        TrendBucket(label=label, start=start, count=len(group))
        for (label, start), group in zip(specs, members)
    ]
    in_window = [incident for group in members for incident in group]
    return buckets, in_window


def trend_percentage(counts: Sequence[int]) -> float:
    """
    Percent change of the mean of the last three buckets against the three
    before them. Both means divide by 3, even when fewer buckets exist.
    """
    recent_avg = sum(counts[-3:]) / 3
    previous_avg = sum(counts[-6:-3]) / 3
    if previous_avg <= 0:
        return 0.0
    return round_half_up((recent_avg - previous_avg) / previous_avg * 100, 1)


def analyze_trends(
    incidents: Sequence[Incident], period: str, now: datetime
) -> TrendAnalysis:
    """
    Bucket incidents for one granularity and summarize the window.

    Args:
        incidents: Current incident batch
        period: daily, weekly, monthly or yearly
        now: Reference time; calendar boundaries use its timezone

    Returns:
        TrendAnalysis with buckets, trend, hotspots and crime type shares
    """
    buckets, in_window = bucket_incidents(incidents, period, now)
    counts = [b.count for b in buckets]
    total = len(in_window)
    trend = trend_percentage(counts)

    hotspots = [
        LocationCount(location=location, count=count)
        for location, count in top_counts((i.location for i in in_window), TOP_N)
    ]
    top_types = [
        CrimeTypeShare(crime_type=crime_type, count=count, percentage=percentage(count, total))
        for crime_type, count in top_counts((i.crime_type for i in in_window), TOP_N)
    ]

    logger.debug(f"Trend analysis ({period}): {total} incidents in window, trend {trend}%")

    return TrendAnalysis(
        period=period,
        buckets=buckets,
        total_incidents=total,
        trend_percentage=trend,
        is_increasing=trend > 0,
        avg_per_period=round_half_up(total / len(buckets), 1),
        hotspots=hotspots,
        top_crime_types=top_types,
    )
