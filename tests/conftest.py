"""Pytest fixtures shared by the QCS portal tests."""

from __future__ import annotations

import sys
from datetime import time
from pathlib import Path
from types import SimpleNamespace

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import Config  # noqa: E402
from portal import create_app, limiter  # noqa: E402
from portal.models import (  # noqa: E402
    BusinessHours,
    Destination,
    PostalGeo,
    Vehicle,
    db,
)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = "memory://"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        limiter.reset()
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        limiter.reset()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def destination_row():
    """Unsaved destination with the standard test rate card."""

    return Destination(
        country_name="United States",
        city_name="New York",
        airport_code="JFK",
        rate_tier1=5.0,
        rate_tier2=4.0,
        rate_tier3=3.5,
        rate_tier4=3.0,
        express_surcharge_pct=25.0,
        transit_days_min=3,
        transit_days_max=5,
        is_active=True,
    )


@pytest.fixture
def seeded(app, destination_row):
    """Persist a destination, two vehicles, two ZIPs and a seven-day schedule."""

    with app.app_context():
        db.session.add(destination_row)
        db.session.add_all(
            [
                Vehicle(name="QCS Truck 1", capacity_lbs=2000, is_active=True),
                Vehicle(name="QCS Truck 2", capacity_lbs=1500, is_active=True),
                Vehicle(name="Retired Van", capacity_lbs=5000, is_active=False),
                PostalGeo(
                    zip_code="07030",
                    city="Hoboken",
                    state="NJ",
                    latitude=40.7439,
                    longitude=-74.0324,
                ),
                PostalGeo(
                    zip_code="08701",
                    city="Lakewood",
                    state="NJ",
                    latitude=40.0979,
                    longitude=-74.2177,
                ),
            ]
        )
        for weekday in range(7):
            db.session.add(
                BusinessHours(
                    day_of_week=weekday,
                    open_time=time(8, 0),
                    close_time=time(17, 0),
                    is_closed=False,
                )
            )
        db.session.commit()
        return SimpleNamespace(destination_id=destination_row.id)


@pytest.fixture
def destination():
    """Plain destination snapshot for calculator tests."""

    return SimpleNamespace(
        id=1,
        country_name="United States",
        city_name="New York",
        airport_code="JFK",
        rate_tier1=5.0,
        rate_tier2=4.0,
        rate_tier3=3.5,
        rate_tier4=3.0,
        express_surcharge_pct=25.0,
        transit_days_min=3,
        transit_days_max=5,
    )
