"""Business-hours resolution from weekly schedules and dated overrides."""

from __future__ import annotations

from datetime import date, time
from typing import Iterable, Optional, Tuple

from sqlalchemy import select

from freight.availability import BusinessHoursEntry
from portal.models import AvailabilityOverride, BusinessHours, db

# (weekday, open, close, closed); weekday follows ``date.weekday()``
DEFAULT_WEEKLY_SCHEDULE: Tuple[Tuple[int, Optional[time], Optional[time], bool], ...] = (
    (0, time(8, 0), time(17, 0), False),
    (1, time(8, 0), time(17, 0), False),
    (2, time(8, 0), time(17, 0), False),
    (3, time(8, 0), time(17, 0), False),
    (4, time(8, 0), time(17, 0), False),
    (5, None, None, True),
    (6, None, None, True),
)


def get_business_hours(day: date) -> Optional[BusinessHoursEntry]:
    """Return the opening hours that apply on ``day``.

    A matching :class:`AvailabilityOverride` wins over the weekly
    :class:`BusinessHours` row for the weekday. ``None`` means no schedule is
    configured for the date at all.

    External Dependencies:
        * Executes :func:`sqlalchemy.select` against both tables. Database
          errors propagate to the caller.
    """

    day_name = day.strftime("%A")
    override = db.session.execute(
        select(AvailabilityOverride).where(AvailabilityOverride.override_date == day)
    ).scalar_one_or_none()
    if override is not None:
        return BusinessHoursEntry(
            open_time=override.open_time,
            close_time=override.close_time,
            is_closed=bool(override.is_closed),
            is_holiday=bool(override.is_holiday),
            holiday_name=override.holiday_name,
            day_name=day_name,
        )

    weekly = db.session.execute(
        select(BusinessHours).where(BusinessHours.day_of_week == day.weekday())
    ).scalar_one_or_none()
    if weekly is None:
        return None
    return BusinessHoursEntry(
        open_time=weekly.open_time,
        close_time=weekly.close_time,
        is_closed=bool(weekly.is_closed),
        day_name=day_name,
    )


def seed_weekly_schedule(
    schedule: Iterable[Tuple[int, Optional[time], Optional[time], bool]] = DEFAULT_WEEKLY_SCHEDULE,
) -> int:
    """Insert weekly schedule rows for weekdays that have none.

    Returns:
        int: Number of rows inserted. The caller commits the session.
    """

    existing = set(db.session.execute(select(BusinessHours.day_of_week)).scalars())
    inserted = 0
    for weekday, open_time, close_time, is_closed in schedule:
        if weekday in existing:
            continue
        db.session.add(
            BusinessHours(
                day_of_week=weekday,
                open_time=open_time,
                close_time=close_time,
                is_closed=is_closed,
            )
        )
        inserted += 1
    return inserted


__all__ = ["DEFAULT_WEEKLY_SCHEDULE", "get_business_hours", "seed_weekly_schedule"]
