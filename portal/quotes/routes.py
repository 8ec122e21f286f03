"""JSON endpoints for the shipping calculator and customer quotes."""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import current_app, jsonify, request
from flask.typing import ResponseReturnValue

from config import rating_settings_from_config
from freight.errors import NotFoundError, ValidationError
from freight.rates import compute_rate, estimate_transit
from services import destinations as destination_service
from services import quotes as quote_service

from .. import limiter
from . import quotes_bp

logger = logging.getLogger(__name__)


def _quote_rate_limit_value() -> str:
    """Return the configured rate limit string for quote endpoints.

    Pulls :data:`flask.current_app.config['QUOTE_RATE_LIMIT']` so deployments
    can tune the protection without code changes.
    """

    value = current_app.config.get("QUOTE_RATE_LIMIT", "30 per minute")
    return str(value or "30 per minute")


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@quotes_bp.route("/calculate", methods=["POST"])
@limiter.limit(_quote_rate_limit_value, methods=["POST"])
def calculate() -> ResponseReturnValue:
    """Price a shipment without persisting anything.

    Expected JSON fields: ``destinationId``, ``weight``, optional
    ``dimensions`` (``length``/``width``/``height`` in inches),
    ``serviceType`` and ``declaredValue``.
    """

    data = _json_body()
    destination_id = data.get("destinationId")
    if destination_id in (None, ""):
        raise ValidationError("Destination is required", field="destinationId")

    destination = destination_service.get_destination(destination_id)
    if destination is None:
        raise NotFoundError("Destination not found")

    service_type = data.get("serviceType", "standard")
    breakdown = compute_rate(
        data.get("weight"),
        data.get("dimensions"),
        destination,
        service_type,
        data.get("declaredValue", 0),
        settings=rating_settings_from_config(current_app.config),
    )
    transit = estimate_transit(destination, breakdown.service_type)
    logger.debug(
        "Calculated %s to %s: %.2f", breakdown.service_type, destination.airport_code,
        breakdown.total_cost,
    )

    payload = {
        "destination": {
            "id": destination.id,
            "country": destination.country_name,
            "city": destination.city_name,
            "airportCode": destination.airport_code,
        },
        "weight": {
            "actual": breakdown.actual_weight_lbs,
            "dimensional": breakdown.dimensional_weight_lbs,
            "billable": breakdown.billable_weight_lbs,
        },
        "serviceType": breakdown.service_type,
        "rateBreakdown": breakdown.as_payload(),
        "transitTime": transit.as_payload(),
        "declaredValue": data.get("declaredValue", 0),
    }
    return jsonify({"data": payload})


@quotes_bp.route("", methods=["POST"])
@limiter.limit(_quote_rate_limit_value, methods=["POST"])
def create_quote() -> ResponseReturnValue:
    """Issue a quote after re-pricing and checking the client's breakdown.

    Expected JSON fields: ``customerInfo`` (``fullName``, ``email``,
    optional ``phone``), ``destinationId``, ``weight``, optional
    ``dimensions``, ``serviceType``, ``declaredValue``, ``rateBreakdown`` and
    ``specialInstructions``. Responds ``201`` with the stored quote.
    """

    data = _json_body()
    quote = quote_service.create_quote(
        data.get("customerInfo"),
        data.get("destinationId"),
        data.get("weight"),
        dimensions=data.get("dimensions"),
        service_type=data.get("serviceType", "standard"),
        declared_value=data.get("declaredValue", 0),
        rate_breakdown=data.get("rateBreakdown"),
        special_instructions=data.get("specialInstructions"),
        customer_id=data.get("customerId"),
        settings=rating_settings_from_config(current_app.config),
    )
    return jsonify({"data": quote_service.serialize_quote(quote)}), 201


@quotes_bp.route("/<reference>", methods=["GET"])
def get_quote(reference: str) -> ResponseReturnValue:
    """Return a previously issued quote."""

    quote = quote_service.get_quote(reference)
    if quote is None:
        raise NotFoundError(f"Quote {reference} not found")
    return jsonify({"data": quote_service.serialize_quote(quote)})


@quotes_bp.route("/<reference>/accept", methods=["POST"])
@limiter.limit(_quote_rate_limit_value, methods=["POST"])
def accept_quote(reference: str) -> ResponseReturnValue:
    """Accept a pending quote before it expires."""

    quote = quote_service.accept_quote(reference)
    return jsonify({"data": quote_service.serialize_quote(quote)})
