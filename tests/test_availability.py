from datetime import date, datetime, time

import pytest

from freight.availability import (
    AvailabilityReason,
    BookingSnapshot,
    BusinessHoursEntry,
    PostalLocation,
    VehicleCapacity,
    VehicleSnapshot,
    compute_vehicle_capacity,
    generate_candidate_windows,
    get_available_windows,
    select_best_vehicle,
)
from freight.errors import OutOfRangeError, ValidationError
from freight.settings import AvailabilitySettings

NOW = datetime(2026, 3, 2, 6, 0)  # Monday
TUESDAY = date(2026, 3, 3)
OPEN = BusinessHoursEntry(open_time=time(8, 0), close_time=time(17, 0))
FLEET = [
    VehicleSnapshot(1, "QCS Truck 1", 2000),
    VehicleSnapshot(2, "QCS Truck 2", 1500),
]


def _booking(booking_id, start_hour, end_hour, weight, vehicle_id, status="confirmed"):
    return BookingSnapshot(
        booking_id,
        datetime(2026, 3, 3, start_hour),
        datetime(2026, 3, 3, end_hour),
        weight,
        vehicle_id,
        status,
    )


def _unexpected(*_args):
    raise AssertionError("lookup should not be called")


def _run(
    request_date=TUESDAY,
    weight=100,
    mode="dropoff",
    zip_code=None,
    *,
    hours=OPEN,
    fleet=FLEET,
    bookings=(),
    geocode=None,
    now=NOW,
    settings=AvailabilitySettings(),
):
    return get_available_windows(
        request_date,
        weight,
        mode,
        zip_code,
        "standard",
        hours_lookup=lambda _day: hours,
        fleet_lookup=lambda: list(fleet),
        bookings_lookup=lambda _start, _end: list(bookings),
        geocode_lookup=geocode or (lambda _zip: None),
        settings=settings,
        now=now,
    )


def test_full_day_yields_hourly_two_hour_windows():
    result = _run()

    assert result.reason is None
    assert [w.display for w in result.available_windows] == [
        "8 AM - 10 AM",
        "9 AM - 11 AM",
        "10 AM - 12 PM",
        "11 AM - 1 PM",
        "12 PM - 2 PM",
        "1 PM - 3 PM",
        "2 PM - 4 PM",
        "3 PM - 5 PM",
    ]
    assert result.business_hours == {"open_time": "08:00", "close_time": "17:00", "is_closed": False}
    assert result.request_details["date"] == "2026-03-03"


def test_same_day_skips_started_windows():
    result = _run(request_date=TUESDAY, now=datetime(2026, 3, 3, 11, 0))

    assert [w.start.hour for w in result.available_windows] == [12, 13, 14, 15]


def test_accepts_iso_string_dates():
    assert len(_run(request_date="2026-03-03").available_windows) == 8


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"request_date": None}, "Date is required"),
        ({"weight": 0}, "Valid estimated weight is required"),
        ({"weight": "abc"}, "Valid estimated weight is required"),
        ({"mode": "delivery"}, 'pickup_or_drop must be either "pickup" or "dropoff"'),
        ({"request_date": "03/03/2026"}, "Date must be in YYYY-MM-DD format"),
    ],
)
def test_invalid_requests_raise_validation_error(kwargs, message):
    with pytest.raises(ValidationError) as exc:
        _run(**kwargs)
    assert exc.value.message == message


def test_past_date_is_out_of_range():
    with pytest.raises(OutOfRangeError, match="past dates"):
        _run(request_date=date(2026, 3, 1))


def test_booking_horizon_is_inclusive():
    assert _run(request_date=date(2026, 4, 1)).reason is None
    with pytest.raises(OutOfRangeError, match="30 days"):
        _run(request_date=date(2026, 4, 2))


def test_holiday_closure_short_circuits_capacity_scan():
    holiday = BusinessHoursEntry(
        open_time=None,
        close_time=None,
        is_closed=True,
        is_holiday=True,
        holiday_name="Thanksgiving Day",
    )

    result = get_available_windows(
        TUESDAY,
        100,
        "pickup",
        "07030",
        hours_lookup=lambda _day: holiday,
        fleet_lookup=_unexpected,
        bookings_lookup=_unexpected,
        geocode_lookup=_unexpected,
        now=NOW,
    )

    assert result.reason is AvailabilityReason.CLOSED
    assert result.message == "Closed for Thanksgiving Day"
    assert result.available_windows == []
    assert result.as_payload()["is_holiday"] is True


def test_weekly_closure_names_the_day():
    closed = BusinessHoursEntry(open_time=None, close_time=None, is_closed=True)

    result = _run(request_date=date(2026, 3, 8), hours=closed)

    assert result.reason is AvailabilityReason.CLOSED
    assert result.message == "Closed on Sunday"


def test_missing_hours_report_not_configured():
    result = _run(hours=None)

    assert result.reason is AvailabilityReason.CLOSED
    assert result.message == "Business hours not configured for this date"


def test_pickup_beyond_radius_is_refused():
    far = PostalLocation("99990", "Far", "NJ", 40.7439 + 0.38, -74.0324)

    result = _run(mode="pickup", zip_code="99990", geocode=lambda _zip: far)

    assert result.reason is AvailabilityReason.OUT_OF_SERVICE_AREA
    assert result.distance_miles == pytest.approx(26.26, abs=0.01)
    assert "Far, NJ (26.3 miles away)" in result.message
    assert "beyond our 25-mile service radius" in result.message
    payload = result.as_payload()
    assert payload["reason"] == "OutOfServiceArea"
    assert payload["max_service_radius"] == 25.0


def test_dropoff_is_not_distance_gated():
    calls = []

    def geocode(zip_code):
        calls.append(zip_code)
        return PostalLocation("99990", "Far", "NJ", 41.2, -74.0324)

    result = _run(mode="dropoff", zip_code="99990", geocode=geocode)

    assert result.reason is None
    assert len(result.available_windows) == 8
    assert calls == []


def test_pickup_within_radius_reports_travel_time():
    near = PostalLocation("07999", "Near", "NJ", 40.7439 + 0.34, -74.0324)

    result = _run(mode="pickup", zip_code="07999", geocode=lambda _zip: near)

    assert result.distance_miles == pytest.approx(23.49, abs=0.01)
    window = result.available_windows[0]
    assert window.estimated_travel_time_minutes == 59
    assert window.pickup_location == "Near, NJ"


def test_unknown_zip_degrades_gracefully():
    result = _run(mode="pickup", zip_code="99999")

    assert result.reason is None
    assert result.distance_miles is None
    assert result.available_windows[0].pickup_location == "ZIP 99999"
    assert result.available_windows[0].estimated_travel_time_minutes is None


def test_radius_comes_from_settings():
    near = PostalLocation("07999", "Near", "NJ", 40.7439 + 0.34, -74.0324)

    result = _run(
        mode="pickup",
        zip_code="07999",
        geocode=lambda _zip: near,
        settings=AvailabilitySettings(service_radius_miles=20),
    )

    assert result.reason is AvailabilityReason.OUT_OF_SERVICE_AREA
    assert "20-mile service radius" in result.message


def test_empty_fleet_reports_no_vehicles():
    result = _run(fleet=[])

    assert result.reason is AvailabilityReason.NO_VEHICLES
    assert result.message == "No vehicles available for this service"


def test_best_fit_prefers_most_remaining_capacity():
    bookings = [_booking(1, 8, 10, 900, 1)]

    result = _run(bookings=bookings)

    by_hour = {w.start.hour: w for w in result.available_windows}
    assert by_hour[8].assigned_vehicle.id == 2
    assert by_hour[8].remaining_capacity_lbs == 1500
    assert by_hour[9].assigned_vehicle.id == 2
    # Touching the booking's end is not an overlap.
    assert by_hour[10].assigned_vehicle.id == 1
    assert by_hour[10].remaining_capacity_lbs == 2000


def test_full_windows_are_dropped():
    bookings = [_booking(1, 8, 10, 500, 1)]

    result = _run(weight=1600, bookings=bookings)

    assert [w.start.hour for w in result.available_windows] == [10, 11, 12, 13, 14, 15]
    assert result.reason is None


def test_every_window_full_returns_message_without_reason():
    result = _run(weight=5000)

    assert result.available_windows == []
    assert result.reason is None
    assert result.message == "No available windows for this date"


def test_cancelled_and_unassigned_bookings_do_not_consume_capacity():
    bookings = [
        _booking(1, 8, 10, 1900, 1, status="cancelled"),
        _booking(2, 8, 10, 1900, None),
        _booking(3, 8, 10, 1900, 99),
    ]

    capacities = compute_vehicle_capacity(
        FLEET, bookings, datetime(2026, 3, 3, 8), datetime(2026, 3, 3, 10)
    )

    assert [c.remaining_lbs for c in capacities] == [2000, 1500]


def test_tie_break_picks_lowest_id_regardless_of_fleet_order():
    fleet = [VehicleSnapshot(7, "B", 1000), VehicleSnapshot(3, "A", 1000)]

    result = _run(fleet=fleet)

    assert {w.assigned_vehicle.id for w in result.available_windows} == {3}


def test_select_best_vehicle_first_seen_wins_ties():
    first = VehicleCapacity(VehicleSnapshot(1, "A", 1000), used_lbs=200)
    second = VehicleCapacity(VehicleSnapshot(2, "B", 800))
    third = VehicleCapacity(VehicleSnapshot(3, "C", 500))

    assert select_best_vehicle([first, second, third], 100) is first
    assert select_best_vehicle([first, second, third], 900) is None


def test_generate_candidate_windows_short_day():
    windows = generate_candidate_windows(TUESDAY, time(8, 0), time(12, 0))

    assert [w.display for w in windows] == ["8 AM - 10 AM", "9 AM - 11 AM", "10 AM - 12 PM"]


def test_generate_candidate_windows_handles_half_hours():
    windows = generate_candidate_windows(TUESDAY, time(8, 30), time(11, 30))

    assert [w.display for w in windows] == ["8:30 AM - 10:30 AM", "9:30 AM - 11:30 AM"]


def test_payload_shape():
    payload = _run(mode="pickup", zip_code="99999").as_payload()

    window = payload["available_windows"][0]
    assert window["start"] == "2026-03-03T08:00:00"
    assert window["assigned_vehicle"] == {"id": 1, "name": "QCS Truck 1", "capacity_lbs": 2000}
    assert payload["request_details"]["pickup_location"] == "ZIP 99999"
    assert "reason" not in payload
