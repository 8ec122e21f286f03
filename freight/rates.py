"""Shipping rate calculations for destination-tiered air cargo quotes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional

from .errors import NotFoundError, ValidationError
from .settings import DEFAULT_RATING_SETTINGS, RatingSettings

SERVICE_STANDARD = "standard"
SERVICE_EXPRESS = "express"

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Return ``value`` rounded to cents using half-up rounding.

    ``Decimal(str(value))`` is used so that values such as ``2.675`` round the
    way a customer reading the number would expect rather than following the
    binary representation of the float.
    """

    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Return ``value`` rounded to the nearest integer, halves away from zero."""

    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def coerce_number(value: Any, field: str) -> float:
    """Convert ``value`` to a finite float or raise :class:`ValidationError`.

    Args:
        value: Raw input, typically a JSON number or numeric string.
        field: Name reported in the error when conversion fails.

    Returns:
        float: Parsed value.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", field=field) from None
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number", field=field)
    return number


@dataclass(frozen=True)
class Dimensions:
    """Package dimensions in inches."""

    length: float
    width: float
    height: float

    @classmethod
    def from_value(cls, value: Any) -> Optional["Dimensions"]:
        """Build :class:`Dimensions` from a mapping or attribute object.

        Returns ``None`` unless all three measurements are supplied; partial
        sets are treated as absent. Negative measurements raise
        :class:`ValidationError`.
        """

        if value is None:
            return None
        if isinstance(value, Dimensions):
            raw = (value.length, value.width, value.height)
        elif isinstance(value, Mapping):
            raw = (value.get("length"), value.get("width"), value.get("height"))
        else:
            raw = (
                getattr(value, "length", None),
                getattr(value, "width", None),
                getattr(value, "height", None),
            )
        if any(part is None or part == "" for part in raw):
            return None
        names = ("length", "width", "height")
        parsed = [coerce_number(part, name) for part, name in zip(raw, names)]
        for number, name in zip(parsed, names):
            if number < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)
        return cls(*parsed)

    @property
    def cubic_inches(self) -> float:
        return self.length * self.width * self.height


@dataclass(frozen=True)
class RateBreakdown:
    """Server-authoritative pricing for one shipment.

    Monetary fields are rounded to cents. Weight fields are reported to two
    decimals; ``dimensional_weight_lbs`` is ``None`` when no dimensions were
    supplied.
    """

    rate_per_lb: float
    base_shipping_cost: float
    express_surcharge: float
    consolidation_fee: float
    handling_fee: float
    insurance_cost: float
    total_cost: float
    actual_weight_lbs: float
    dimensional_weight_lbs: Optional[float]
    billable_weight_lbs: float
    service_type: str = SERVICE_STANDARD

    def as_payload(self) -> Dict[str, Any]:
        """Return the camelCase shape exchanged with the customer portal."""

        return {
            "ratePerLb": self.rate_per_lb,
            "baseShippingCost": self.base_shipping_cost,
            "expressSurcharge": self.express_surcharge,
            "consolidationFee": self.consolidation_fee,
            "handlingFee": self.handling_fee,
            "insuranceCost": self.insurance_cost,
            "totalCost": self.total_cost,
            "actualWeight": self.actual_weight_lbs,
            "dimensionalWeight": self.dimensional_weight_lbs,
            "billableWeight": self.billable_weight_lbs,
            "serviceType": self.service_type,
        }


@dataclass(frozen=True)
class TransitEstimate:
    """Business-day delivery window for a destination."""

    min_days: int
    max_days: int
    average_days: int
    label: str

    def as_payload(self) -> Dict[str, Any]:
        return {
            "min": self.min_days,
            "max": self.max_days,
            "average": self.average_days,
            "label": self.label,
        }


def normalise_service_type(service_type: Optional[str]) -> str:
    """Return ``"express"`` or ``"standard"``; unknown values price as standard."""

    if (service_type or "").strip().lower() == SERVICE_EXPRESS:
        return SERVICE_EXPRESS
    return SERVICE_STANDARD


def dimensional_weight(
    dimensions: Optional[Dimensions], settings: RatingSettings = DEFAULT_RATING_SETTINGS
) -> Optional[float]:
    """Return ``(L * W * H) / dim_divisor`` or ``None`` without dimensions."""

    if dimensions is None:
        return None
    return dimensions.cubic_inches / settings.dim_divisor


def tier_rate(
    destination: Any,
    billable_weight: float,
    settings: RatingSettings = DEFAULT_RATING_SETTINGS,
) -> float:
    """Return the per-pound rate for ``billable_weight`` at ``destination``.

    Tiers are selected by billable weight: up to ``tier1_max_lbs`` uses
    ``rate_tier1`` and so on, with anything above ``tier3_max_lbs`` using
    ``rate_tier4``. A tier without a configured rate falls back to the next
    lower tier, and to ``0`` when no lower tier is configured.
    """

    rates = [
        getattr(destination, "rate_tier1", None),
        getattr(destination, "rate_tier2", None),
        getattr(destination, "rate_tier3", None),
        getattr(destination, "rate_tier4", None),
    ]
    if billable_weight <= settings.tier1_max_lbs:
        index = 0
    elif billable_weight <= settings.tier2_max_lbs:
        index = 1
    elif billable_weight <= settings.tier3_max_lbs:
        index = 2
    else:
        index = 3

    while index >= 0:
        if rates[index] is not None:
            return float(rates[index])
        index -= 1
    return 0.0


def insurance_cost(
    declared_value: float, settings: RatingSettings = DEFAULT_RATING_SETTINGS
) -> float:
    """Return the insurance premium for ``declared_value`` before rounding."""

    if declared_value <= settings.insurance_floor:
        return 0.0
    premium = (
        (declared_value - settings.insurance_floor) / 100.0
    ) * settings.insurance_rate_per_100
    return max(settings.insurance_minimum, premium)


def compute_rate(
    weight_lb: Any,
    dimensions: Any,
    destination: Any,
    service_type: Optional[str] = SERVICE_STANDARD,
    declared_value: Any = 0,
    *,
    consolidation_fee: Any = 0,
    settings: RatingSettings = DEFAULT_RATING_SETTINGS,
) -> RateBreakdown:
    """Compute the authoritative rate breakdown for a shipment.

    Args:
        weight_lb: Actual shipment weight in pounds. Must be positive.
        dimensions: Optional package dimensions in inches as a mapping,
            :class:`Dimensions`, or object with ``length``/``width``/``height``.
        destination: Destination snapshot exposing ``rate_tier1`` through
            ``rate_tier4`` and ``express_surcharge_pct``.
        service_type: ``"express"`` adds the destination surcharge; any other
            value prices as standard.
        declared_value: Declared cargo value in USD used for insurance.
        consolidation_fee: Pass-through fee supplied by the caller. Only
            positive values are kept.
        settings: Pricing constants.

    Returns:
        RateBreakdown: Rounded pricing and weight metrics.

    Raises:
        ValidationError: If weight, dimensions, or declared value are invalid.
        NotFoundError: If ``destination`` is ``None``.
    """

    actual = coerce_number(weight_lb, "weight")
    if actual <= 0:
        raise ValidationError("weight must be greater than zero", field="weight")
    declared = coerce_number(
        0 if declared_value in (None, "") else declared_value, "declared_value"
    )
    if declared < 0:
        raise ValidationError(
            "declared_value cannot be negative", field="declared_value"
        )
    if destination is None:
        raise NotFoundError("Destination not found")

    dims = Dimensions.from_value(dimensions)
    dim_weight = dimensional_weight(dims, settings)
    billable = max(actual, dim_weight if dim_weight is not None else actual)

    service = normalise_service_type(service_type)
    rate = tier_rate(destination, billable, settings)
    base = billable * rate
    surcharge = 0.0
    if service == SERVICE_EXPRESS:
        pct = getattr(destination, "express_surcharge_pct", None) or 0.0
        surcharge = base * float(pct) / 100.0
        base += surcharge

    handling = (
        settings.handling_fee if billable > settings.handling_threshold_lbs else 0.0
    )
    insurance = insurance_cost(declared, settings)

    consolidation = 0.0
    if consolidation_fee not in (None, ""):
        fee = coerce_number(consolidation_fee, "consolidation_fee")
        if fee > 0:
            consolidation = round_money(fee)

    total = base + consolidation + handling + insurance

    return RateBreakdown(
        rate_per_lb=round_money(rate),
        base_shipping_cost=round_money(base),
        express_surcharge=round_money(surcharge),
        consolidation_fee=consolidation,
        handling_fee=round_money(handling),
        insurance_cost=round_money(insurance),
        total_cost=round_money(total),
        actual_weight_lbs=round_money(actual),
        dimensional_weight_lbs=round_money(dim_weight) if dim_weight is not None else None,
        billable_weight_lbs=round_money(billable),
        service_type=service,
    )


def estimate_transit(destination: Any, service_type: Optional[str]) -> TransitEstimate:
    """Return the delivery estimate for ``destination``.

    Express shipments shave one business day off each bound, never dropping
    below one day for the minimum or two days for the maximum.
    """

    min_days = int(getattr(destination, "transit_days_min", None) or 0)
    max_days = int(getattr(destination, "transit_days_max", None) or min_days)
    if normalise_service_type(service_type) == SERVICE_EXPRESS:
        min_days = max(1, min_days - 1)
        max_days = max(2, max_days - 1)
    average = round_half_up((min_days + max_days) / 2)
    return TransitEstimate(
        min_days=min_days,
        max_days=max_days,
        average_days=average,
        label=f"{min_days}-{max_days} business days",
    )


__all__ = [
    "Dimensions",
    "RateBreakdown",
    "SERVICE_EXPRESS",
    "SERVICE_STANDARD",
    "TransitEstimate",
    "coerce_number",
    "compute_rate",
    "dimensional_weight",
    "estimate_transit",
    "insurance_cost",
    "normalise_service_type",
    "round_half_up",
    "round_money",
    "tier_rate",
]
