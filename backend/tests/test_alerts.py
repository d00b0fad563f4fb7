from crimewatch.services.analytics.alerts import filter_alerts, new_incidents
from crimewatch.services.ingest.incident_store import IncidentStore


def test_new_incidents_by_id(make_incident):
    a, b, c = make_incident(id="a"), make_incident(id="b"), make_incident(id="c")

    assert [i.id for i in new_incidents([a, b], [c, a, b])] == ["c"]
    assert new_incidents([a, b], [a, b]) == []
    # a replaced record with the same count is still detected
    assert [i.id for i in new_incidents([a, b], [a, c])] == ["c"]


def test_cold_start_does_not_alert(make_incident):
    assert new_incidents([], [make_incident(), make_incident()]) == []


def test_filter_alerts(make_incident):
    incidents = [
        make_incident(id="1", crime_type="Theft", location="Anna Nagar West"),
        make_incident(id="2", crime_type="Robbery", location="Anna Nagar"),
        make_incident(id="3", crime_type="Theft", location="Guindy"),
    ]

    assert [i.id for i in filter_alerts(incidents)] == ["1", "2", "3"]
    assert [i.id for i in filter_alerts(incidents, crime_types=["Theft"])] == ["1", "3"]
    assert [i.id for i in filter_alerts(incidents, near_location="anna nagar")] == ["1", "2"]
    assert [i.id for i in filter_alerts(incidents, ["Theft"], "ANNA")] == ["1"]
    assert filter_alerts(incidents, ["Arson"]) == []


def test_reordered_records_without_ids_are_not_new():
    previous = IncidentStore.ingest([{"location": "Adyar"}, {"location": "Guindy"}])
    current = IncidentStore.ingest([{"location": "Guindy"}, {"location": "Adyar"}, {"location": "Tambaram"}])

    assert [i.location for i in new_incidents(previous, current)] == ["Tambaram"]
