"""ZIP code geocoding backed by the ``postal_geos`` table."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from freight.availability import PostalLocation
from freight.distance import sanitize_zip
from portal.models import PostalGeo, db

logger = logging.getLogger(__name__)


def lookup_postal_location(zip_code: object) -> Optional[PostalLocation]:
    """Return the geocoded location for ``zip_code``.

    The availability allocator treats an unresolved ZIP as "distance
    unknown" rather than a failure, so database errors are logged and
    reported as ``None`` here.

    Args:
        zip_code: Five-digit ZIP or ZIP+4 in any common format.

    Returns:
        Optional[PostalLocation]: Location details or ``None`` when the ZIP
        is malformed, unknown, or the lookup failed.
    """

    normalised = sanitize_zip(zip_code)  # type: ignore[arg-type]
    if normalised is None:
        return None
    try:
        row = db.session.execute(
            select(
                PostalGeo.zip_code,
                PostalGeo.city,
                PostalGeo.state,
                PostalGeo.latitude,
                PostalGeo.longitude,
            ).where(PostalGeo.zip_code == normalised)
        ).first()
    except SQLAlchemyError:
        logger.warning("Postal lookup failed for ZIP %s", normalised, exc_info=True)
        db.session.rollback()
        return None
    if row is None:
        return None
    return PostalLocation(*row)


__all__ = ["lookup_postal_location"]
