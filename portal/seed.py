"""Reference data loaded by ``flask --app flask_app seed``."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Dict

from sqlalchemy import select

from services.business_hours import seed_weekly_schedule

from .models import AvailabilityOverride, PostalGeo, Vehicle, db

logger = logging.getLogger(__name__)

FLEET = (
    ("QCS Truck 1", 2000.0),
    ("QCS Truck 2", 1500.0),
    ("QCS Van 1", 800.0),
    ("QCS Truck 3", 2500.0),
)

POSTAL_GEOS = (
    ("07002", "Bayonne", "NJ", 40.6687, -74.1143),
    ("07010", "Cliffside Park", "NJ", 40.8218, -73.9876),
    ("07017", "East Orange", "NJ", 40.7673, -74.2049),
    ("07024", "Fort Lee", "NJ", 40.8501, -73.9701),
    ("07029", "Harrison", "NJ", 40.7465, -74.1565),
    ("07030", "Hoboken", "NJ", 40.7439, -74.0324),
    ("07032", "Kearny", "NJ", 40.7684, -74.1454),
    ("07047", "North Bergen", "NJ", 40.8043, -74.0121),
    ("07501", "Paterson", "NJ", 40.9168, -74.1718),
    ("08701", "Lakewood", "NJ", 40.0979, -74.2177),
    ("08901", "New Brunswick", "NJ", 40.4862, -74.4518),
)

HOLIDAYS = (
    (date(2026, 11, 26), "Thanksgiving Day"),
    (date(2026, 11, 27), "Black Friday - Limited Service"),
    (date(2026, 12, 25), "Christmas Day"),
    (date(2026, 12, 31), "New Years Eve"),
    (date(2027, 1, 1), "New Years Day"),
)

SHORT_DAYS = ((date(2026, 12, 24), time(8, 0), time(12, 0)),)


def seed_reference_data() -> Dict[str, int]:
    """Insert the default fleet, ZIP geocodes, schedule and holidays.

    Existing rows are left untouched so the command can be re-run safely.

    Returns:
        Dict[str, int]: Number of rows inserted per table.
    """

    counts = {"vehicles": 0, "postal_geos": 0, "business_hours": 0, "overrides": 0}

    known_vehicles = set(db.session.execute(select(Vehicle.name)).scalars())
    for name, capacity in FLEET:
        if name not in known_vehicles:
            db.session.add(Vehicle(name=name, capacity_lbs=capacity, is_active=True))
            counts["vehicles"] += 1

    known_zips = set(db.session.execute(select(PostalGeo.zip_code)).scalars())
    for zip_code, city, state, lat, lon in POSTAL_GEOS:
        if zip_code not in known_zips:
            db.session.add(
                PostalGeo(
                    zip_code=zip_code, city=city, state=state, latitude=lat, longitude=lon
                )
            )
            counts["postal_geos"] += 1

    counts["business_hours"] = seed_weekly_schedule()

    known_dates = set(
        db.session.execute(select(AvailabilityOverride.override_date)).scalars()
    )
    for day, name in HOLIDAYS:
        if day not in known_dates:
            db.session.add(
                AvailabilityOverride(
                    override_date=day, is_closed=True, is_holiday=True, holiday_name=name
                )
            )
            counts["overrides"] += 1
    for day, open_time, close_time in SHORT_DAYS:
        if day not in known_dates:
            db.session.add(
                AvailabilityOverride(
                    override_date=day, open_time=open_time, close_time=close_time
                )
            )
            counts["overrides"] += 1

    db.session.commit()
    logger.info("Seeded reference data: %s", counts)
    return counts
