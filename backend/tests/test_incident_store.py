from datetime import datetime, timezone

import pytest

from crimewatch.core.errors import FeedError
from crimewatch.services.ingest.incident_store import IncidentStore

INGESTED_AT = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def test_ingest_normalizes_fields():
    records = [
        {
            "_id": "abc",
            "crime_type": "Robbery",
            "location": "Guindy",
            "latitude": 13.0,
            "longitude": "80.22",
            "date": "2024-01-08T10:30:00Z",
            "description": "Phone snatched",
        }
    ]
    [incident] = IncidentStore.ingest(records, INGESTED_AT)

    assert incident.id == "abc"
    assert incident.crime_type == "Robbery"
    assert incident.location == "Guindy"
    assert incident.latitude == 13.0
    assert incident.longitude == 80.22
    assert incident.is_spatial
    assert incident.timestamp == datetime(2024, 1, 8, 10, 30, tzinfo=timezone.utc)
    assert not incident.timestamp_inferred
    assert incident.description == "Phone snatched"


def test_missing_fields_fall_back():
    [incident] = IncidentStore.ingest([{"crime_type": "  ", "location": None}], INGESTED_AT)

    assert incident.id.startswith("rec-")
    assert incident.crime_type == "Unknown"
    assert incident.location == "Unknown"
    assert incident.timestamp == INGESTED_AT
    assert incident.timestamp_inferred
    assert incident.description is None


def test_created_at_used_when_date_missing():
    [incident] = IncidentStore.ingest(
        [{"id": 7, "createdAt": "2023-12-31T23:00:00+00:00"}], INGESTED_AT
    )
    assert incident.id == "7"
    assert incident.timestamp == datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc)


def test_unparseable_date_falls_through_to_created_at():
    [incident] = IncidentStore.ingest(
        [{"id": 1, "date": "yesterday-ish", "createdAt": "2024-01-05"}], INGESTED_AT
    )
    assert incident.timestamp == datetime(2024, 1, 5, tzinfo=timezone.utc)


def test_epoch_milliseconds_are_accepted():
    [incident] = IncidentStore.ingest([{"id": 1, "createdAt": 1704067200000}], INGESTED_AT)
    assert incident.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_non_mapping_records_are_dropped():
    records = ["garbage", 42, None, {"id": "ok", "location": "Adyar"}]
    incidents = IncidentStore.ingest(records, INGESTED_AT)
    assert [i.id for i in incidents] == ["ok"]


@pytest.mark.parametrize(
    "coords",
    [
        {},
        {"latitude": 13.0},
        {"latitude": "north", "longitude": 80.2},
        {"latitude": True, "longitude": 80.2},
        {"latitude": float("nan"), "longitude": 80.2},
        {"latitude": 123.0, "longitude": 80.2},
    ],
)
def test_unusable_coordinates_make_incident_non_spatial(coords):
    [incident] = IncidentStore.ingest([{"id": "x", **coords}], INGESTED_AT)
    assert incident.latitude is None
    assert incident.longitude is None
    assert not incident.is_spatial


def test_input_order_is_preserved():
    records = [{"id": str(n)} for n in range(5, 0, -1)]
    assert [i.id for i in IncidentStore.ingest(records, INGESTED_AT)] == ["5", "4", "3", "2", "1"]


def test_non_list_payload_is_a_feed_error():
    with pytest.raises(FeedError):
        IncidentStore.ingest({"crimes": []}, INGESTED_AT)


def test_replace_swaps_snapshot_and_bumps_version():
    store = IncidentStore()
    assert store.snapshot.version == 0
    assert len(store.snapshot) == 0

    first = store.replace(IncidentStore.ingest([{"id": "a"}], INGESTED_AT), fetched_at=INGESTED_AT)
    second = store.replace(IncidentStore.ingest([{"id": "b"}, {"id": "c"}], INGESTED_AT))

    assert first.version == 1
    assert second.version == 2
    assert store.snapshot is second
    assert [i.id for i in first.incidents] == ["a"]
    assert len(store.snapshot) == 2


def test_fallback_ids_follow_content_not_position():
    first = IncidentStore.ingest([{"location": "Adyar"}, {"location": "Guindy"}], INGESTED_AT)
    reordered = IncidentStore.ingest([{"location": "Guindy"}, {"location": "Adyar"}], INGESTED_AT)

    assert [i.id for i in first] == [i.id for i in reversed(reordered)]
    assert first[0].id != first[1].id


def test_fallback_ids_never_reuse_positional_text():
    [with_id, without_id] = IncidentStore.ingest([{"id": "idx-1"}, {"location": "Adyar"}], INGESTED_AT)
    assert with_id.id == "idx-1"
    assert without_id.id != "idx-1"


def test_identical_records_without_id_stay_unique():
    incidents = IncidentStore.ingest([{"location": "Adyar"}] * 3, INGESTED_AT)
    base = incidents[0].id
    assert [i.id for i in incidents] == [base, f"{base}-2", f"{base}-3"]
