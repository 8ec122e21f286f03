"""Pickup and drop-off window allocation against fleet capacity.

:func:`get_available_windows` walks a single request through validation, the
booking horizon check, business hours, the pickup service radius, candidate
window generation, and a per-window capacity scan. Expected business outcomes
(closed days, out-of-area pickups, an empty fleet) are returned as
:class:`AvailabilityResult` values with a :class:`AvailabilityReason`; only
malformed input and data-access failures raise.

All datetimes handled here are naive and expressed in the facility's local
time zone (:attr:`AvailabilitySettings.timezone`).

The allocator only suggests windows. It places no hold on capacity, so two
concurrent callers may be offered the same window; booking confirmation is
responsible for re-checking capacity.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from .distance import haversine_miles
from .errors import OutOfRangeError, ValidationError
from .settings import DEFAULT_AVAILABILITY_SETTINGS, AvailabilitySettings

logger = logging.getLogger(__name__)

PICKUP = "pickup"
DROPOFF = "dropoff"
CANCELLED = "cancelled"


class AvailabilityReason(str, Enum):
    """Expected business outcomes that end a request without windows."""

    CLOSED = "Closed"
    OUT_OF_SERVICE_AREA = "OutOfServiceArea"
    NO_VEHICLES = "NoVehicles"


@dataclass(frozen=True)
class BusinessHoursEntry:
    """Resolved opening hours for a single date."""

    open_time: Optional[time]
    close_time: Optional[time]
    is_closed: bool = False
    is_holiday: bool = False
    holiday_name: Optional[str] = None
    day_name: Optional[str] = None


@dataclass(frozen=True)
class PostalLocation:
    """Geocoded ZIP code."""

    zip_code: str
    city: str
    state: str
    latitude: float
    longitude: float

    @property
    def label(self) -> str:
        return f"{self.city}, {self.state}"


@dataclass(frozen=True)
class VehicleSnapshot:
    """Active fleet vehicle available for assignment."""

    id: Any
    name: str
    capacity_lbs: float


@dataclass(frozen=True)
class BookingSnapshot:
    """Existing booking that may consume vehicle capacity."""

    id: Any
    window_start: datetime
    window_end: datetime
    estimated_weight_lbs: Optional[float]
    vehicle_id: Any
    status: str


@dataclass(frozen=True)
class CandidateWindow:
    start: datetime
    end: datetime
    display: str


@dataclass
class VehicleCapacity:
    vehicle: VehicleSnapshot
    used_lbs: float = 0.0

    @property
    def remaining_lbs(self) -> float:
        return float(self.vehicle.capacity_lbs) - self.used_lbs


@dataclass(frozen=True)
class AvailableWindow:
    """Bookable window with the vehicle suggested for it."""

    start: datetime
    end: datetime
    display: str
    remaining_capacity_lbs: float
    assigned_vehicle: VehicleSnapshot
    estimated_travel_time_minutes: Optional[int] = None
    pickup_location: Optional[str] = None

    def as_payload(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "display": self.display,
            "remaining_capacity_lbs": self.remaining_capacity_lbs,
            "assigned_vehicle": {
                "id": self.assigned_vehicle.id,
                "name": self.assigned_vehicle.name,
                "capacity_lbs": self.assigned_vehicle.capacity_lbs,
            },
            "estimated_travel_time_minutes": self.estimated_travel_time_minutes,
            "pickup_location": self.pickup_location,
        }


@dataclass
class AvailabilityResult:
    """Outcome of :func:`get_available_windows`.

    ``reason`` is ``None`` when the request was evaluated against the fleet,
    even if every window turned out to be full.
    """

    available_windows: List[AvailableWindow] = field(default_factory=list)
    reason: Optional[AvailabilityReason] = None
    message: Optional[str] = None
    request_details: Dict[str, Any] = field(default_factory=dict)
    business_hours: Optional[Dict[str, Any]] = None
    distance_miles: Optional[float] = None
    pickup_location: Optional[str] = None
    max_service_radius: Optional[float] = None
    is_holiday: Optional[bool] = None
    holiday_name: Optional[str] = None

    def as_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready representation used by the booking API."""

        payload: Dict[str, Any] = {
            "available_windows": [w.as_payload() for w in self.available_windows],
        }
        if self.reason is not None:
            payload["reason"] = self.reason.value
        if self.message:
            payload["message"] = self.message
        if self.reason is AvailabilityReason.CLOSED and self.is_holiday is not None:
            payload["is_holiday"] = self.is_holiday
            payload["holiday_name"] = self.holiday_name
        if self.reason is AvailabilityReason.OUT_OF_SERVICE_AREA:
            payload["distance_miles"] = self.distance_miles
            payload["max_service_radius"] = self.max_service_radius
            payload["pickup_location"] = self.pickup_location
        if self.request_details:
            payload["request_details"] = self.request_details
        if self.business_hours is not None:
            payload["business_hours"] = self.business_hours
        return payload


HoursLookup = Callable[[date], Optional[BusinessHoursEntry]]
FleetLookup = Callable[[], Sequence[VehicleSnapshot]]
BookingsLookup = Callable[[datetime, datetime], Iterable[BookingSnapshot]]
GeocodeLookup = Callable[[str], Optional[PostalLocation]]


def parse_request_date(value: Union[str, date, datetime, None]) -> date:
    """Return ``value`` as a :class:`datetime.date`.

    Raises:
        ValidationError: If the value is missing or not ``YYYY-MM-DD``.
    """

    if value is None or value == "":
        raise ValidationError("Date is required", field="date")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(
            "Date must be in YYYY-MM-DD format", field="date"
        ) from None


def _parse_weight(value: Any) -> float:
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError("Valid estimated weight is required", field="estimated_weight_lbs")
    try:
        weight = float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "Valid estimated weight is required", field="estimated_weight_lbs"
        ) from None
    if not math.isfinite(weight) or weight <= 0:
        raise ValidationError("Valid estimated weight is required", field="estimated_weight_lbs")
    return weight


def local_now(settings: AvailabilitySettings, now: Optional[datetime] = None) -> datetime:
    """Return ``now`` as a naive datetime in the facility time zone."""

    zone = ZoneInfo(settings.timezone)
    if now is None:
        return datetime.now(zone).replace(tzinfo=None)
    if now.tzinfo is not None:
        return now.astimezone(zone).replace(tzinfo=None)
    return now


def format_clock(moment: datetime) -> str:
    """Render ``moment`` as ``"8 AM"`` or ``"8:30 AM"``."""

    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    if moment.minute:
        return f"{hour}:{moment.minute:02d} {suffix}"
    return f"{hour} {suffix}"


def generate_candidate_windows(
    day: date,
    open_time: time,
    close_time: time,
    *,
    now: Optional[datetime] = None,
    window_hours: int = 2,
    step_hours: int = 1,
) -> List[CandidateWindow]:
    """Return fixed-width windows between ``open_time`` and ``close_time``.

    Windows start at ``open_time`` and every ``step_hours`` thereafter; the
    last window ends no later than ``close_time``. Windows starting at or
    before ``now`` are skipped.
    """

    width = timedelta(hours=window_hours)
    step = timedelta(hours=step_hours)
    start = datetime.combine(day, open_time)
    close = datetime.combine(day, close_time)
    windows: List[CandidateWindow] = []
    while start + width <= close:
        end = start + width
        if now is None or start > now:
            windows.append(
                CandidateWindow(start, end, f"{format_clock(start)} - {format_clock(end)}")
            )
        start += step
    return windows


def _vehicle_sort_key(vehicle: VehicleSnapshot) -> Tuple[int, Any]:
    if isinstance(vehicle.id, int) and not isinstance(vehicle.id, bool):
        return (0, vehicle.id)
    return (1, str(vehicle.id))


def compute_vehicle_capacity(
    vehicles: Iterable[VehicleSnapshot],
    bookings: Iterable[BookingSnapshot],
    window_start: datetime,
    window_end: datetime,
) -> List[VehicleCapacity]:
    """Return per-vehicle usage for bookings overlapping the window.

    Vehicles are returned in ascending id order. Cancelled bookings, bookings
    without a vehicle or assigned to a vehicle outside ``vehicles``, and
    bookings that merely touch the window edge are ignored.
    """

    capacities = [VehicleCapacity(v) for v in sorted(vehicles, key=_vehicle_sort_key)]
    by_id = {c.vehicle.id: c for c in capacities}
    for booking in bookings:
        if (booking.status or "").strip().lower() == CANCELLED:
            continue
        if booking.vehicle_id is None or booking.vehicle_id not in by_id:
            continue
        if not (booking.window_start < window_end and booking.window_end > window_start):
            continue
        by_id[booking.vehicle_id].used_lbs += float(booking.estimated_weight_lbs or 0)
    return capacities


def select_best_vehicle(
    capacities: Sequence[VehicleCapacity], weight_lbs: float
) -> Optional[VehicleCapacity]:
    """Return the vehicle with the most remaining capacity that fits ``weight_lbs``.

    A later vehicle replaces the current pick only when it has strictly more
    remaining capacity, so the first vehicle examined wins ties.
    """

    best: Optional[VehicleCapacity] = None
    for capacity in capacities:
        remaining = capacity.remaining_lbs
        if remaining < weight_lbs:
            continue
        if best is None or remaining > best.remaining_lbs:
            best = capacity
    return best


def _closed_message(entry: BusinessHoursEntry, day: date) -> str:
    if entry.is_holiday:
        return f"Closed for {entry.holiday_name or 'holiday'}"
    day_name = (entry.day_name or "").strip() or day.strftime("%A")
    return f"Closed on {day_name}"


def get_available_windows(
    request_date: Union[str, date, datetime, None],
    estimated_weight_lbs: Any,
    pickup_or_drop: Optional[str],
    zip_code: Optional[str] = None,
    service_type: Optional[str] = "standard",
    *,
    hours_lookup: HoursLookup,
    fleet_lookup: FleetLookup,
    bookings_lookup: BookingsLookup,
    geocode_lookup: GeocodeLookup,
    settings: AvailabilitySettings = DEFAULT_AVAILABILITY_SETTINGS,
    now: Optional[datetime] = None,
) -> AvailabilityResult:
    """Return bookable windows for a pickup or drop-off request.

    Args:
        request_date: Requested service date (``YYYY-MM-DD`` or ``date``).
        estimated_weight_lbs: Weight that must fit on a single vehicle.
        pickup_or_drop: ``"pickup"`` or ``"dropoff"``.
        zip_code: Pickup ZIP; only consulted for pickups.
        service_type: Echoed in ``request_details``.
        hours_lookup: Returns the :class:`BusinessHoursEntry` for a date.
        fleet_lookup: Returns the active vehicles.
        bookings_lookup: Returns bookings overlapping ``(start, end)``.
        geocode_lookup: Resolves a ZIP to a :class:`PostalLocation`.
        settings: Facility location, radius, horizon and window constants.
        now: Current time; defaults to the wall clock in ``settings.timezone``.

    Returns:
        AvailabilityResult: Windows, or a reason explaining why none apply.

    Raises:
        ValidationError: For a missing date, non-positive weight, or unknown
            ``pickup_or_drop``.
        OutOfRangeError: For past dates or dates beyond the booking horizon.
    """

    day = parse_request_date(request_date)
    weight = _parse_weight(estimated_weight_lbs)
    mode = (pickup_or_drop or "").strip().lower()
    if mode not in {PICKUP, DROPOFF}:
        raise ValidationError(
            'pickup_or_drop must be either "pickup" or "dropoff"', field="pickup_or_drop"
        )
    zip_code = (str(zip_code).strip() or None) if zip_code is not None else None

    current = local_now(settings, now)
    today = current.date()
    if day < today:
        raise OutOfRangeError("Cannot book for past dates")
    if day > today + timedelta(days=settings.booking_horizon_days):
        raise OutOfRangeError(
            f"Cannot book more than {settings.booking_horizon_days} days in advance"
        )

    request_details: Dict[str, Any] = {
        "date": day.isoformat(),
        "pickup_or_drop": mode,
        "estimated_weight_lbs": weight,
        "service_type": service_type,
        "zip_code": zip_code,
        "distance_miles": None,
        "pickup_location": None,
    }
    logger.debug("Availability request: %s", request_details)

    entry = hours_lookup(day)
    if entry is not None and entry.is_closed:
        message = _closed_message(entry, day)
        logger.info("No windows for %s: %s", day, message)
        return AvailabilityResult(
            reason=AvailabilityReason.CLOSED,
            message=message,
            is_holiday=entry.is_holiday,
            holiday_name=entry.holiday_name,
        )
    if entry is None or entry.open_time is None or entry.close_time is None:
        return AvailabilityResult(
            reason=AvailabilityReason.CLOSED,
            message="Business hours not configured for this date",
        )

    distance: Optional[float] = None
    pickup_location: Optional[str] = None
    if mode == PICKUP and zip_code:
        location = geocode_lookup(zip_code)
        if location is None:
            logger.info("ZIP %s not geocoded; skipping radius check", zip_code)
            pickup_location = f"ZIP {zip_code}"
        else:
            distance = round(
                haversine_miles(
                    settings.origin_latitude,
                    settings.origin_longitude,
                    float(location.latitude),
                    float(location.longitude),
                ),
                2,
            )
            pickup_location = location.label
            if distance > settings.service_radius_miles:
                radius = settings.service_radius_miles
                return AvailabilityResult(
                    reason=AvailabilityReason.OUT_OF_SERVICE_AREA,
                    message=(
                        f"Pickup location in {pickup_location} ({distance:.1f} miles away) "
                        f"is beyond our {radius:g}-mile service radius. Please choose "
                        "drop-off or contact support for special arrangements."
                    ),
                    distance_miles=distance,
                    pickup_location=pickup_location,
                    max_service_radius=radius,
                )
    request_details["distance_miles"] = distance
    request_details["pickup_location"] = pickup_location

    candidates = generate_candidate_windows(
        day,
        entry.open_time,
        entry.close_time,
        now=current,
        window_hours=settings.window_hours,
        step_hours=settings.window_step_hours,
    )

    vehicles = list(fleet_lookup())
    if not vehicles:
        return AvailabilityResult(
            reason=AvailabilityReason.NO_VEHICLES,
            message="No vehicles available for this service",
        )

    travel_minutes = (
        math.ceil(distance * settings.travel_minutes_per_mile)
        if distance is not None
        else None
    )

    windows: List[AvailableWindow] = []
    for candidate in candidates:
        bookings = bookings_lookup(candidate.start, candidate.end)
        capacities = compute_vehicle_capacity(
            vehicles, bookings, candidate.start, candidate.end
        )
        best = select_best_vehicle(capacities, weight)
        if best is None:
            logger.debug("Window %s has no vehicle for %.2f lbs", candidate.display, weight)
            continue
        windows.append(
            AvailableWindow(
                start=candidate.start,
                end=candidate.end,
                display=candidate.display,
                remaining_capacity_lbs=best.remaining_lbs,
                assigned_vehicle=best.vehicle,
                estimated_travel_time_minutes=travel_minutes,
                pickup_location=pickup_location,
            )
        )

    logger.info(
        "Found %d of %d windows for %s (%s, %.2f lbs)",
        len(windows),
        len(candidates),
        day,
        mode,
        weight,
    )
    return AvailabilityResult(
        available_windows=windows,
        message=None if windows else "No available windows for this date",
        request_details=request_details,
        business_hours={
            "open_time": entry.open_time.strftime("%H:%M"),
            "close_time": entry.close_time.strftime("%H:%M"),
            "is_closed": False,
        },
        distance_miles=distance,
        pickup_location=pickup_location,
    )


__all__ = [
    "AvailabilityReason",
    "AvailabilityResult",
    "AvailableWindow",
    "BookingSnapshot",
    "BusinessHoursEntry",
    "CandidateWindow",
    "PostalLocation",
    "VehicleCapacity",
    "VehicleSnapshot",
    "compute_vehicle_capacity",
    "format_clock",
    "generate_candidate_windows",
    "get_available_windows",
    "local_now",
    "parse_request_date",
    "select_best_vehicle",
]
