"""Vehicle and booking lookups backing the availability allocator."""

from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select

from freight.availability import CANCELLED, BookingSnapshot, VehicleSnapshot
from portal.models import Booking, Vehicle, db


def get_active_vehicles() -> List[VehicleSnapshot]:
    """Return active vehicles ordered by id.

    External Dependencies:
        * Executes :func:`sqlalchemy.select` against :class:`Vehicle`.
    """

    rows = db.session.execute(
        select(Vehicle.id, Vehicle.name, Vehicle.capacity_lbs)
        .where(Vehicle.is_active.is_(True))
        .order_by(Vehicle.id.asc())
    ).all()
    return [VehicleSnapshot(*row) for row in rows]


def get_bookings_in_range(start: datetime, end: datetime) -> List[BookingSnapshot]:
    """Return non-cancelled bookings whose window overlaps ``[start, end)``.

    Args:
        start: Window start in facility local time.
        end: Window end in facility local time.

    Returns:
        List[BookingSnapshot]: Bookings that consume capacity in the window.

    External Dependencies:
        * Executes :func:`sqlalchemy.select` against :class:`Booking`.
    """

    rows = db.session.execute(
        select(
            Booking.id,
            Booking.window_start,
            Booking.window_end,
            Booking.estimated_weight_lbs,
            Booking.vehicle_id,
            Booking.status,
        )
        .where(
            Booking.window_start < end,
            Booking.window_end > start,
            Booking.status != CANCELLED,
        )
        .order_by(Booking.id.asc())
    ).all()
    return [BookingSnapshot(*row) for row in rows]


__all__ = ["get_active_vehicles", "get_bookings_in_range"]
