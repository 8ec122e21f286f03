"""Pricing and booking-window calculators for QCS Cargo.

The modules in this package are free of Flask and database imports; data is
supplied through snapshot objects and injected lookup callables so the
calculators can be exercised directly in tests.
"""

from __future__ import annotations

from .availability import AvailabilityReason, AvailabilityResult, get_available_windows
from .errors import (
    FreightError,
    NotFoundError,
    OutOfRangeError,
    TamperingError,
    ValidationError,
)
from .integrity import validate_quote
from .rates import RateBreakdown, compute_rate, estimate_transit

__all__ = [
    "AvailabilityReason",
    "AvailabilityResult",
    "FreightError",
    "NotFoundError",
    "OutOfRangeError",
    "RateBreakdown",
    "TamperingError",
    "ValidationError",
    "compute_rate",
    "estimate_transit",
    "get_available_windows",
    "validate_quote",
]
