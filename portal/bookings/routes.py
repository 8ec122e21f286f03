"""JSON endpoint returning bookable pickup and drop-off windows."""

from __future__ import annotations

from flask import current_app, jsonify, request
from flask.typing import ResponseReturnValue

from config import availability_settings_from_config
from freight.availability import get_available_windows
from freight.errors import ValidationError
from services import business_hours, fleet, geocode

from .. import limiter
from . import bookings_bp


def _availability_rate_limit_value() -> str:
    """Return the rate limit applied to availability lookups.

    Reads ``AVAILABILITY_RATE_LIMIT`` with a ``"60 per minute"`` fallback.
    """

    value = current_app.config.get("AVAILABILITY_RATE_LIMIT", "60 per minute")
    return str(value or "60 per minute")


@bookings_bp.route("/available-windows", methods=["POST"])
@limiter.limit(_availability_rate_limit_value, methods=["POST"])
def available_windows() -> ResponseReturnValue:
    """Return time windows with fleet capacity for the requested date.

    Expected JSON fields: ``date`` (``YYYY-MM-DD``), ``estimated_weight_lbs``,
    ``pickup_or_drop`` (``"pickup"`` or ``"dropoff"``), optional ``zip_code``
    and ``service_type``.

    Closed days, out-of-area pickups and an empty fleet still respond ``200``
    with an empty ``available_windows`` list and a ``reason``.
    """

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    result = get_available_windows(
        data.get("date"),
        data.get("estimated_weight_lbs"),
        data.get("pickup_or_drop"),
        data.get("zip_code"),
        data.get("service_type", "standard"),
        hours_lookup=business_hours.get_business_hours,
        fleet_lookup=fleet.get_active_vehicles,
        bookings_lookup=fleet.get_bookings_in_range,
        geocode_lookup=geocode.lookup_postal_location,
        settings=availability_settings_from_config(current_app.config),
    )
    if result.reason is not None:
        current_app.logger.info(
            "Availability request ended with %s: %s", result.reason.value, result.message
        )
    return jsonify({"data": result.as_payload()})
