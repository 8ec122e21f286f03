"""Comparison of client-submitted pricing against the server's breakdown."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import TamperingError
from .rates import RateBreakdown, round_money

logger = logging.getLogger(__name__)

# camelCase key, snake_case alias, server attribute
COMPARED_FIELDS = (
    ("totalCost", "total_cost", "total_cost"),
    ("baseShippingCost", "base_shipping_cost", "base_shipping_cost"),
    ("expressSurcharge", "express_surcharge", "express_surcharge"),
)

SNAPSHOT_FIELDS = (
    ("ratePerLb", "rate_per_lb"),
    ("baseShippingCost", "base_shipping_cost"),
    ("expressSurcharge", "express_surcharge"),
    ("consolidationFee", "consolidation_fee"),
    ("handlingFee", "handling_fee"),
    ("insuranceCost", "insurance_cost"),
    ("totalCost", "total_cost"),
)


@dataclass(frozen=True)
class IntegrityResult:
    """Outcome of a successful :func:`validate_quote` call."""

    ok: bool = True
    checked: bool = True
    client_snapshot: Dict[str, Optional[float]] = field(default_factory=dict)


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalise_client_breakdown(client: Optional[Mapping[str, Any]]) -> Dict[str, Optional[float]]:
    """Return client pricing keyed by camelCase names and rounded to cents.

    Accepts camelCase or snake_case keys. Values that cannot be read as
    numbers become ``None``.
    """

    snapshot: Dict[str, Optional[float]] = {}
    if not client:
        return snapshot
    for camel, snake in SNAPSHOT_FIELDS:
        raw = client.get(camel, client.get(snake))
        number = _to_number(raw)
        snapshot[camel] = round_money(number) if number is not None else None
    return snapshot


def validate_quote(
    client: Optional[Mapping[str, Any]], server: RateBreakdown
) -> IntegrityResult:
    """Confirm client-displayed pricing matches the server computation.

    Both sides are rounded to cents and compared with zero tolerance on the
    total, base shipping cost, and express surcharge. Fields the client does
    not send are skipped, and a client breakdown without a total is not
    checked at all.

    Args:
        client: Breakdown the customer's browser displayed, if any.
        server: Authoritative :class:`~freight.rates.RateBreakdown`.

    Returns:
        IntegrityResult: ``ok`` is always ``True``; ``checked`` is ``False``
        when there was nothing to compare.

    Raises:
        TamperingError: When any compared field differs after rounding.
    """

    snapshot = normalise_client_breakdown(client)
    if snapshot.get("totalCost") is None:
        return IntegrityResult(checked=False, client_snapshot=snapshot)

    discrepancy: Dict[str, float] = {}
    for camel, _snake, attribute in COMPARED_FIELDS:
        client_value = snapshot.get(camel)
        if client_value is None:
            continue
        server_value = round_money(getattr(server, attribute))
        delta = round_money(client_value - server_value)
        if delta != 0:
            discrepancy[camel] = delta

    if discrepancy:
        logger.error(
            "Rate discrepancy detected: client=%s server=%s delta=%s",
            snapshot,
            server.as_payload(),
            discrepancy,
        )
        raise TamperingError(discrepancy)

    return IntegrityResult(checked=True, client_snapshot=snapshot)


__all__ = ["IntegrityResult", "normalise_client_breakdown", "validate_quote"]
