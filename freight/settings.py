"""Tunable constants for the rate calculator and availability allocator.

The calculators accept these dataclasses as explicit arguments instead of
reading module-level globals so that deployments can override values through
:mod:`config` and tests can vary them per call.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RatingSettings:
    """Pricing constants used by :func:`freight.rates.compute_rate`."""

    dim_divisor: float = 166.0
    tier1_max_lbs: float = 50.0
    tier2_max_lbs: float = 100.0
    tier3_max_lbs: float = 200.0
    handling_threshold_lbs: float = 70.0
    handling_fee: float = 20.0
    insurance_floor: float = 100.0
    insurance_rate_per_100: float = 7.5
    insurance_minimum: float = 15.0
    quote_validity_days: int = 7
    quote_follow_up_days: int = 3


@dataclass(frozen=True)
class AvailabilitySettings:
    """Scheduling constants used by :mod:`freight.availability`."""

    origin_latitude: float = 40.7439
    origin_longitude: float = -74.0324
    origin_label: str = "Hoboken, NJ"
    service_radius_miles: float = 25.0
    travel_minutes_per_mile: float = 2.5
    booking_horizon_days: int = 30
    window_hours: int = 2
    window_step_hours: int = 1
    timezone: str = "America/New_York"


DEFAULT_RATING_SETTINGS = RatingSettings()
DEFAULT_AVAILABILITY_SETTINGS = AvailabilitySettings()


__all__ = [
    "AvailabilitySettings",
    "DEFAULT_AVAILABILITY_SETTINGS",
    "DEFAULT_RATING_SETTINGS",
    "RatingSettings",
]
