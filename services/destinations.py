"""Lookups for destination rate records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select

from portal.models import Destination, db


@dataclass(frozen=True)
class DestinationSnapshot:
    """Immutable representation of a :class:`Destination` record."""

    id: int
    country_name: str
    city_name: str
    airport_code: str
    rate_tier1: float | None
    rate_tier2: float | None
    rate_tier3: float | None
    rate_tier4: float | None
    express_surcharge_pct: float
    transit_days_min: int
    transit_days_max: int

    @classmethod
    def from_model(cls, row: Destination) -> "DestinationSnapshot":
        return cls(
            id=row.id,
            country_name=row.country_name,
            city_name=row.city_name,
            airport_code=row.airport_code,
            rate_tier1=row.rate_tier1,
            rate_tier2=row.rate_tier2,
            rate_tier3=row.rate_tier3,
            rate_tier4=row.rate_tier4,
            express_surcharge_pct=row.express_surcharge_pct or 0.0,
            transit_days_min=row.transit_days_min,
            transit_days_max=row.transit_days_max,
        )


def get_destination(destination_id: object) -> Optional[DestinationSnapshot]:
    """Return the active destination identified by ``destination_id``.

    Args:
        destination_id: Primary key of the destination. Strings containing an
            integer are accepted because ids usually arrive from JSON forms.

    Returns:
        Optional[DestinationSnapshot]: Rate details, or ``None`` when the id
        is malformed, unknown, or inactive.

    External Dependencies:
        * Executes :func:`sqlalchemy.select` against :class:`Destination`.
          Database errors propagate to the caller.
    """

    try:
        key = int(destination_id)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    row = db.session.execute(
        select(Destination).where(Destination.id == key, Destination.is_active.is_(True))
    ).scalar_one_or_none()
    if row is None:
        return None
    return DestinationSnapshot.from_model(row)


def list_destinations() -> List[DestinationSnapshot]:
    """Return all active destinations ordered by country and city."""

    rows = db.session.execute(
        select(Destination)
        .where(Destination.is_active.is_(True))
        .order_by(Destination.country_name, Destination.city_name)
    ).scalars()
    return [DestinationSnapshot.from_model(row) for row in rows]


__all__ = ["DestinationSnapshot", "get_destination", "list_destinations"]
