"""Quote issuance and lifecycle helpers.

Quotes are always persisted with server-computed figures. A pricing
breakdown supplied by the customer's browser is only compared against the
server result by :func:`freight.integrity.validate_quote` and kept in the
quote metadata for audit.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy import select, update

from freight.errors import NotFoundError, ValidationError
from freight.integrity import normalise_client_breakdown, validate_quote
from freight.rates import Dimensions, compute_rate, estimate_transit
from freight.settings import DEFAULT_RATING_SETTINGS, RatingSettings
from portal.models import Quote, db
from services.destinations import DestinationSnapshot, get_destination

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_EXPIRED = "expired"

_REFERENCE_ATTEMPTS = 5


def _now() -> datetime:
    """Return the current UTC timestamp for quote lifecycle calculations."""

    return datetime.utcnow()


def _is_valid_email(address: str) -> bool:
    if not address or "@" not in address:
        return False
    local, _, domain = address.partition("@")
    return bool(local.strip()) and "." in domain


def _customer_field(customer: Mapping[str, Any], camel: str, snake: str) -> str:
    return str(customer.get(camel) or customer.get(snake) or "").strip()


def generate_reference(airport_code: str, issued_at: datetime) -> str:
    """Return a quote reference such as ``QCS-20250115-JFK-4821``."""

    suffix = 1000 + secrets.randbelow(9000)
    code = (airport_code or "XXX").strip().upper()
    return f"QCS-{issued_at:%Y%m%d}-{code}-{suffix}"


def _unique_reference(airport_code: str, issued_at: datetime) -> str:
    for _ in range(_REFERENCE_ATTEMPTS):
        candidate = generate_reference(airport_code, issued_at)
        exists = db.session.execute(
            select(Quote.id).where(Quote.reference == candidate)
        ).first()
        if exists is None:
            return candidate
    raise RuntimeError("Unable to allocate a unique quote reference")


def create_quote(
    customer: Optional[Mapping[str, Any]],
    destination_id: Any,
    weight: Any,
    dimensions: Any = None,
    service_type: Optional[str] = "standard",
    declared_value: Any = 0,
    rate_breakdown: Optional[Mapping[str, Any]] = None,
    special_instructions: Optional[str] = None,
    customer_id: Optional[str] = None,
    *,
    destination_lookup: Callable[[Any], Optional[DestinationSnapshot]] = get_destination,
    settings: RatingSettings = DEFAULT_RATING_SETTINGS,
    now: Optional[datetime] = None,
) -> Quote:
    """Price, verify and persist a customer quote request.

    Args:
        customer: Mapping with ``fullName``/``full_name``, ``email`` and an
            optional ``phone``.
        destination_id: Identifier passed to ``destination_lookup``.
        weight: Actual weight in pounds.
        dimensions: Optional package dimensions in inches.
        service_type: ``"standard"`` or ``"express"``.
        declared_value: Declared cargo value in USD.
        rate_breakdown: Pricing the customer saw. Its ``consolidationFee`` is
            passed through and its totals are checked against the server.
        special_instructions: Free-form notes stored with the quote.
        customer_id: Identifier of an authenticated customer, if any.
        destination_lookup: Callable resolving destinations.
        settings: Pricing and quote lifecycle constants.
        now: Issue time; defaults to the current UTC time.

    Returns:
        Quote: The committed quote row.

    Raises:
        ValidationError: For missing customer details or invalid shipment input.
        NotFoundError: When the destination cannot be resolved.
        TamperingError: When ``rate_breakdown`` disagrees with the server.
    """

    if customer is not None and not isinstance(customer, Mapping):
        raise ValidationError("Customer details must be an object", field="customerInfo")
    if rate_breakdown is not None and not isinstance(rate_breakdown, Mapping):
        raise ValidationError("Rate breakdown must be an object", field="rateBreakdown")

    customer = customer or {}
    full_name = _customer_field(customer, "fullName", "full_name")
    email = _customer_field(customer, "email", "email")
    if not full_name or not email:
        raise ValidationError("Customer name and email are required", field="customerInfo")
    if not _is_valid_email(email):
        raise ValidationError("Invalid email address", field="email")
    if destination_id in (None, "") or weight in (None, ""):
        raise ValidationError("Destination and weight are required")

    destination = destination_lookup(destination_id)
    if destination is None:
        raise NotFoundError("Destination not found")

    client_snapshot = normalise_client_breakdown(rate_breakdown)
    breakdown = compute_rate(
        weight,
        dimensions,
        destination,
        service_type,
        declared_value,
        consolidation_fee=client_snapshot.get("consolidationFee"),
        settings=settings,
    )

    integrity = validate_quote(rate_breakdown, breakdown)
    transit = estimate_transit(destination, breakdown.service_type)

    issued_at = now or _now()
    expires_at = issued_at + timedelta(days=settings.quote_validity_days)
    follow_up_due_at = issued_at + timedelta(days=settings.quote_follow_up_days)
    dims = Dimensions.from_value(dimensions)

    metadata: Dict[str, Any] = {
        "transit_label": transit.label,
        "transit_estimate": transit.as_payload(),
        "follow_up_due_at": follow_up_due_at.isoformat(),
        "follow_up_window_days": settings.quote_follow_up_days,
        "destination": {
            "country": destination.country_name,
            "city": destination.city_name,
            "airport_code": destination.airport_code,
        },
        "weight": {
            "actual": breakdown.actual_weight_lbs,
            "billable": breakdown.billable_weight_lbs,
            "dimensional": breakdown.dimensional_weight_lbs,
            "rate_per_lb": breakdown.rate_per_lb,
        },
        "rate_breakdown": breakdown.as_payload(),
        "calculation_flagged": False,
        "calculation_validated_at": issued_at.isoformat(),
    }
    if rate_breakdown:
        metadata["client_rate_snapshot"] = integrity.client_snapshot

    quote = Quote(
        reference=_unique_reference(destination.airport_code, issued_at),
        customer_id=customer_id,
        customer_name=full_name,
        customer_email=email,
        customer_phone=_customer_field(customer, "phone", "phone") or None,
        destination_id=destination.id,
        service_type=breakdown.service_type,
        weight_lbs=breakdown.actual_weight_lbs,
        length_in=dims.length if dims else None,
        width_in=dims.width if dims else None,
        height_in=dims.height if dims else None,
        declared_value=float(declared_value or 0),
        rate_per_lb=breakdown.rate_per_lb,
        base_shipping_cost=breakdown.base_shipping_cost,
        express_surcharge=breakdown.express_surcharge,
        consolidation_fee=breakdown.consolidation_fee,
        handling_fee=breakdown.handling_fee,
        insurance_cost=breakdown.insurance_cost,
        total_cost=breakdown.total_cost,
        estimated_transit_days=transit.average_days,
        status=STATUS_PENDING,
        calculation_flagged=False,
        special_instructions=(special_instructions or "").strip() or None,
        quote_metadata=json.dumps(metadata),
        created_at=issued_at,
        expires_at=expires_at,
        follow_up_due_at=follow_up_due_at,
        follow_up_status="scheduled",
    )
    db.session.add(quote)
    db.session.commit()
    logger.info(
        "Issued quote %s for %s: %.2f USD", quote.reference, email, quote.total_cost
    )
    return quote


def get_quote(reference: str) -> Optional[Quote]:
    """Return the quote with ``reference`` or ``None``."""

    return db.session.execute(
        select(Quote).where(Quote.reference == (reference or "").strip().upper())
    ).scalar_one_or_none()


def expire_stale_quotes(now: Optional[datetime] = None) -> int:
    """Mark pending quotes past their expiry as expired.

    Returns:
        int: Number of quotes updated.
    """

    cutoff = now or _now()
    result = db.session.execute(
        update(Quote)
        .where(Quote.status == STATUS_PENDING, Quote.expires_at < cutoff)
        .values(status=STATUS_EXPIRED)
    )
    db.session.commit()
    count = result.rowcount or 0
    if count:
        logger.info("Expired %d stale quotes", count)
    return count


def accept_quote(reference: str, now: Optional[datetime] = None) -> Quote:
    """Accept a pending, unexpired quote.

    Raises:
        NotFoundError: If no quote has ``reference``.
        ValidationError: If the quote is not pending or has expired.
    """

    quote = get_quote(reference)
    if quote is None:
        raise NotFoundError(f"Quote {reference} not found")
    if quote.status != STATUS_PENDING:
        raise ValidationError(f"Quote is {quote.status}", code="quote_not_pending")
    if quote.expires_at < (now or _now()):
        quote.status = STATUS_EXPIRED
        db.session.commit()
        raise ValidationError("Quote has expired", code="quote_expired")
    quote.status = STATUS_ACCEPTED
    quote.follow_up_status = "completed"
    db.session.commit()
    return quote


def serialize_quote(quote: Quote) -> Dict[str, Any]:
    """Return ``quote`` as a JSON-ready dictionary."""

    metadata: Dict[str, Any] = {}
    if quote.quote_metadata:
        try:
            metadata = json.loads(quote.quote_metadata)
        except ValueError:
            logger.warning("Quote %s has unreadable metadata", quote.reference)
    return {
        "reference": quote.reference,
        "status": quote.status,
        "customer": {
            "fullName": quote.customer_name,
            "email": quote.customer_email,
            "phone": quote.customer_phone,
        },
        "destinationId": quote.destination_id,
        "serviceType": quote.service_type,
        "weight": quote.weight_lbs,
        "declaredValue": quote.declared_value,
        "rateBreakdown": {
            "ratePerLb": quote.rate_per_lb,
            "baseShippingCost": quote.base_shipping_cost,
            "expressSurcharge": quote.express_surcharge,
            "consolidationFee": quote.consolidation_fee,
            "handlingFee": quote.handling_fee,
            "insuranceCost": quote.insurance_cost,
            "totalCost": quote.total_cost,
        },
        "estimatedTransitDays": quote.estimated_transit_days,
        "createdAt": quote.created_at.isoformat() if quote.created_at else None,
        "expiresAt": quote.expires_at.isoformat() if quote.expires_at else None,
        "followUpDueAt": (
            quote.follow_up_due_at.isoformat() if quote.follow_up_due_at else None
        ),
        "metadata": metadata,
    }


__all__ = [
    "STATUS_ACCEPTED",
    "STATUS_EXPIRED",
    "STATUS_PENDING",
    "accept_quote",
    "create_quote",
    "expire_stale_quotes",
    "generate_reference",
    "get_quote",
    "serialize_quote",
]
