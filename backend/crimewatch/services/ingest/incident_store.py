"""Normalization of raw feed records and the current incident snapshot."""

import hashlib
import json
import logging
import math
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

from crimewatch.core.errors import FeedError
from crimewatch.schemas.incident import Incident, IncidentBatch

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

# Field names tried in order for each canonical attribute
_ID_FIELDS = ("id", "_id")
_TYPE_FIELDS = ("crime_type", "crimeType", "type")
_TIME_FIELDS = ("date", "createdAt", "timestamp")


def _first_present(record: Mapping[str, Any], fields: Sequence[str]) -> Any:
    for field in fields:
        value = record.get(field)
        if value is not None and value != "":
            return value
    return None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_coordinate(value: Any, limit: float) -> Optional[float]:
    """Parse a latitude/longitude value, returning None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or abs(number) > limit:
        return None
    return number


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a feed timestamp.

    Accepts ISO-8601 strings (with or without offset, or date only), epoch
    milliseconds, and datetime/date objects. Naive values are taken as UTC.
    """
    if value is None or isinstance(value, bool):
        return None

    parsed: Optional[datetime] = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def content_id(record: Mapping[str, Any]) -> str:
    """Id for a record the feed sent without one, stable while its fields are."""
    body = json.dumps(record, sort_keys=True, default=str, separators=(",", ":"))
    return f"rec-{hashlib.sha1(body.encode('utf-8')).hexdigest()[:12]}"


def normalize_record(
    record: Any, ingested_at: datetime, fallback_id: Optional[str] = None
) -> Optional[Incident]:
    """
    Convert one raw feed record into an Incident.

    Returns None when the record is not a mapping at all. Records without
    usable coordinates are kept as non-spatial incidents.
    """
    if not isinstance(record, Mapping):
        return None

    raw_id = _first_present(record, _ID_FIELDS)
    incident_id = _clean_text(raw_id) or fallback_id or content_id(record)

    latitude = _parse_coordinate(record.get("latitude"), 90.0)
    longitude = _parse_coordinate(record.get("longitude"), 180.0)
    if latitude is None or longitude is None:
        latitude = longitude = None

    timestamp = None
    for field in _TIME_FIELDS:
        timestamp = _parse_timestamp(record.get(field))
        if timestamp is not None:
            break
    inferred = timestamp is None

    return Incident(
        id=incident_id,
        crime_type=_clean_text(_first_present(record, _TYPE_FIELDS)) or UNKNOWN,
        location=_clean_text(record.get("location")) or UNKNOWN,
        latitude=latitude,
        longitude=longitude,
        timestamp=ingested_at if inferred else timestamp,
        timestamp_inferred=inferred,
        description=_clean_text(record.get("description")),
    )


class IncidentStore:
    """Holds the current incident batch and turns feed payloads into incidents."""

    def __init__(self):
        self._batch = IncidentBatch()

    @staticmethod
    def ingest(records: Any, ingested_at: Optional[datetime] = None) -> List[Incident]:
        """
        Normalize a feed payload into a list of incidents.

        Args:
            records: Decoded feed body, expected to be a list of records
            ingested_at: Time substituted for records without a timestamp

        Returns:
            Incidents in input order

        Raises:
            FeedError: If the payload is not a list
        """
        if not isinstance(records, list):
            raise FeedError(
                f"Incident feed returned {type(records).__name__}, expected a list"
            )

        if ingested_at is None:
            ingested_at = datetime.now(timezone.utc)
        elif ingested_at.tzinfo is None:
            ingested_at = ingested_at.replace(tzinfo=timezone.utc)

        incidents = []
        dropped = 0
        fallback_seen: Counter = Counter()
        for record in records:
            fallback_id = None
            if isinstance(record, Mapping) and _clean_text(_first_present(record, _ID_FIELDS)) is None:
                # Identical id-less records in one batch get -2, -3, ... suffixes
                fallback_id = content_id(record)
                fallback_seen[fallback_id] += 1
                if fallback_seen[fallback_id] > 1:
                    fallback_id = f"{fallback_id}-{fallback_seen[fallback_id]}"
            incident = normalize_record(record, ingested_at, fallback_id)
            if incident is None:
                dropped += 1
                continue
            incidents.append(incident)

        if dropped:
            logger.debug(f"Dropped {dropped} unparseable feed records")
        return incidents

    @property
    def snapshot(self) -> IncidentBatch:
        return self._batch

    def replace(
        self,
        incidents: Sequence[Incident],
        fetched_at: Optional[datetime] = None,
        source: str = "feed",
    ) -> IncidentBatch:
        """Swap in a new immutable batch and return it."""
        batch = IncidentBatch(
            incidents=tuple(incidents),
            fetched_at=fetched_at or datetime.now(timezone.utc),
            version=self._batch.version + 1,
            source=source,
        )
        self._batch = batch
        logger.debug(f"Incident snapshot v{batch.version} holds {len(batch)} incidents")
        return batch


# Singleton instance
_store: Optional[IncidentStore] = None


def get_incident_store() -> IncidentStore:
    """
    Get the singleton incident store instance.

    Returns:
        IncidentStore instance
    """
    global _store
    if _store is None:
        _store = IncidentStore()
    return _store
