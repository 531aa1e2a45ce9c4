"""Route search: date window, matching rules, recurring buses and ordering."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bus_booking.buses.search import BusSearchService, parse_time_to_minutes, reference_today
from bus_booking.config import settings
from bus_booking.exceptions import InvalidDateRange, ValidationError


@pytest.mark.parametrize(
    "time_str, minutes",
    [
        ("00:00", 0),
        ("07:05", 425),
        ("20:00", 1200),
        ("10:00 PM", 1320),
        ("12:00 AM", 0),
        ("12:30 PM", 750),
        ("9:15 am", 555),
        ("Dep 10:00 PM", 1320),
        ("departs 07:45 sharp", 465),
        ("not a time", 0),
        ("25:00", 0),
        ("13:00 PM", 0),
        ("", 0),
        (None, 0),
    ],
)
def test_parse_time_to_minutes(time_str, minutes):
    assert parse_time_to_minutes(time_str) == minutes


def test_reference_today_uses_fixed_offset(monkeypatch):
    late_evening = datetime(2030, 3, 1, 23, 30, tzinfo=timezone.utc)
    assert reference_today(late_evening).isoformat() == "2030-03-01"

    monkeypatch.setattr(settings, "SEARCH_UTC_OFFSET_MINUTES", 330)
    assert reference_today(late_evening).isoformat() == "2030-03-02"

    naive = datetime(2030, 3, 1, 10, 0)
    assert reference_today(naive).isoformat() == "2030-03-01"


def test_today_is_rejected(db_session):
    with pytest.raises(InvalidDateRange):
        BusSearchService(db_session).search("Mumbai", "Pune", reference_today().isoformat())


def test_more_than_90_days_ahead_is_rejected(db_session):
    too_far = reference_today() + timedelta(days=91)
    with pytest.raises(InvalidDateRange):
        BusSearchService(db_session).search("Mumbai", "Pune", too_far.isoformat())


def test_window_edges_are_accepted(db_session, create_bus):
    create_bus(departure_date=None)
    service = BusSearchService(db_session)
    assert len(service.search("Mumbai", "Pune", (reference_today() + timedelta(days=1)).isoformat())) == 1
    assert len(service.search("Mumbai", "Pune", (reference_today() + timedelta(days=90)).isoformat())) == 1


def test_missing_route_is_a_validation_error(db_session, tomorrow):
    with pytest.raises(ValidationError):
        BusSearchService(db_session).search("", "Pune", tomorrow.isoformat())


def test_route_match_is_case_insensitive_substring(db_session, create_bus, tomorrow):
    bus = create_bus(from_city="Mumbai", to_city="Pune")
    results = BusSearchService(db_session).search("mumbai", "PUN", tomorrow.isoformat())
    assert [b.id for b in results] == [bus.id]


def test_recurring_buses_are_included_for_any_valid_date(db_session, create_bus, tomorrow):
    dated = create_bus(departure_date=tomorrow)
    recurring = create_bus(departure_date=None)
    service = BusSearchService(db_session)

    assert {b.id for b in service.search("Mumbai", "Pune", tomorrow.isoformat())} == {dated.id, recurring.id}

    later = tomorrow + timedelta(days=10)
    assert [b.id for b in service.search("Mumbai", "Pune", later.isoformat())] == [recurring.id]


def test_inactive_and_other_routes_are_excluded(db_session, create_bus, tomorrow):
    create_bus(is_active=False)
    create_bus(from_city="Chennai", to_city="Madurai")
    assert BusSearchService(db_session).search("Mumbai", "Pune", tomorrow.isoformat()) == []


def test_results_sorted_by_departure_time(db_session, create_bus, tomorrow):
    night = create_bus(departure_time="10:00 PM")
    morning = create_bus(departure_time="07:30")
    broken = create_bus(departure_time="soon")
    afternoon = create_bus(departure_time="2:15 PM")

    results = BusSearchService(db_session).search("Mumbai", "Pune", tomorrow.isoformat())
    assert [b.id for b in results] == [broken.id, morning.id, afternoon.id, night.id]


def test_search_endpoint_omits_seat_map(client, create_bus, tomorrow):
    create_bus(price=Decimal("650"))
    response = client.get("/api/search-buses", params={"from": "mumbai", "to": "pune", "date": tomorrow.isoformat()})

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert "seats" not in data[0]
    assert data[0]["available_seats"] == 40
    assert Decimal(data[0]["price"]) == Decimal("650")


def test_search_endpoint_rejects_today(client):
    response = client.get(
        "/api/search-buses", params={"from": "Mumbai", "to": "Pune", "date": reference_today().isoformat()}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_DATE_RANGE"


def test_search_endpoint_rejects_malformed_date(client):
    response = client.get("/api/search-buses", params={"from": "Mumbai", "to": "Pune", "date": "next friday"})
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_available_routes_are_unique_and_sorted(client, create_bus):
    create_bus(from_city="Pune", to_city="Mumbai")
    create_bus(from_city="Mumbai", to_city="Pune")
    create_bus(from_city="Mumbai", to_city="Goa")
    create_bus(from_city="Chennai", to_city="Delhi", is_active=False)

    response = client.get("/api/available-routes")

    assert response.status_code == 200
    assert response.json() == {"from": ["Mumbai", "Pune"], "to": ["Goa", "Mumbai", "Pune"]}
