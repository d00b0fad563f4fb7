"""Headline counts for the analytics dashboard"""
from datetime import datetime, timedelta
from typing import Sequence

from crimewatch.schemas.analytics import CrimeTypeShare, DashboardStats, LocationCount
from crimewatch.schemas.incident import Incident
from crimewatch.services.analytics.tallies import percentage, round_half_up, top_counts
from crimewatch.services.analytics.temporal import ensure_aware, local_time

TIME_RANGES = ("today", "week", "month", "year", "all")


def filter_by_time_range(
    incidents: Sequence[Incident], time_range: str, now: datetime
) -> list:
    """Incidents inside a dashboard time range, input order kept."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range '{time_range}', expected one of {', '.join(TIME_RANGES)}")
    now = ensure_aware(now)
    if time_range == "all":
        return list(incidents)

    week_ago = now - timedelta(days=7)
    selected = []
    for incident in incidents:
        ts = local_time(incident, now)
        if time_range == "today":
            keep = ts.date() == now.date()
        elif time_range == "week":
            keep = incident.timestamp >= week_ago
        elif time_range == "month":
            keep = (ts.year, ts.month) == (now.year, now.month)
        else:
            keep = ts.year == now.year
        if keep:
            selected.append(incident)
    return selected


def dashboard_stats(
    incidents: Sequence[Incident], now: datetime, time_range: str = "all"
) -> DashboardStats:
    """
    Compute dashboard counters.

    The today/week/month counters always cover the whole batch; the
    breakdowns (top types, top locations, hourly histogram) cover only the
    selected time range.
    """
    now = ensure_aware(now)
    filtered = filter_by_time_range(incidents, time_range, now)

    today = now.date()
    yesterday = today - timedelta(days=1)
    trend_days = [today - timedelta(days=i) for i in range(6, -1, -1)]
    daily = {day: 0 for day in trend_days}

    today_count = yesterday_count = 0
    for incident in incidents:
        day = local_time(incident, now).date()
        if day in daily:
            daily[day] += 1
        if day == today:
            today_count += 1
        elif day == yesterday:
            yesterday_count += 1

    hourly = [0] * 24
    for incident in filtered:
        hourly[local_time(incident, now).hour] += 1

    if yesterday_count == 0:
        growth = 0.0
    else:
        growth = round_half_up((today_count - yesterday_count) / yesterday_count * 100, 1)

    total_filtered = len(filtered)
    return DashboardStats(
        time_range=time_range,
        total=len(incidents),
        today=today_count,
        this_week=len(filter_by_time_range(incidents, "week", now)),
        this_month=len(filter_by_time_range(incidents, "month", now)),
        filtered=total_filtered,
        top_crime_types=[
            CrimeTypeShare(crime_type=t, count=c, percentage=percentage(c, total_filtered))
            for t, c in top_counts((i.crime_type for i in filtered))
        ],
        top_locations=[
            LocationCount(location=loc, count=c)
            for loc, c in top_counts((i.location for i in filtered))
        ],
        hourly=hourly,
        daily_trend=[daily[day] for day in trend_days],
        today_growth=growth,
    )
