"""Great-circle distance helpers used for pickup radius checks."""

from __future__ import annotations

import math
from typing import Optional, Union

EARTH_RADIUS_MILES = 3958.8


def sanitize_zip(zip_code: Union[str, int, None]) -> Optional[str]:
    """Return the first five digits of ``zip_code`` or ``None`` when invalid.

    Spaces, dashes, and ZIP+4 suffixes are tolerated. Values with fewer than
    five digits are rejected.

    Args:
        zip_code: Raw ZIP code from a form or JSON payload.

    Returns:
        Optional[str]: Five-digit ZIP string, or ``None``.
    """

    if zip_code is None:
        return None
    digits = "".join(ch for ch in str(zip_code) if ch.isdigit())
    if len(digits) < 5:
        return None
    return digits[:5]


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in miles."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))


__all__ = ["EARTH_RADIUS_MILES", "haversine_miles", "sanitize_zip"]
