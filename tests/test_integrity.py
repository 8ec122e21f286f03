import logging

import pytest

from freight.errors import TAMPERING_MESSAGE, TamperingError
from freight.integrity import normalise_client_breakdown, validate_quote
from freight.rates import compute_rate


@pytest.fixture
def server(destination):
    return compute_rate(40, None, destination, "express", 500)


def test_matching_breakdown_passes(server):
    result = validate_quote(server.as_payload(), server)

    assert result.ok is True
    assert result.checked is True
    assert result.client_snapshot["totalCost"] == server.total_cost


def test_float_noise_is_rounded_before_comparison(server):
    client = {"totalCost": server.total_cost + 0.004, "baseShippingCost": server.base_shipping_cost}

    assert validate_quote(client, server).ok is True


def test_total_mismatch_raises(server, caplog):
    client = {"totalCost": server.total_cost - 0.01}

    with caplog.at_level(logging.ERROR, logger="freight.integrity"):
        with pytest.raises(TamperingError) as exc:
            validate_quote(client, server)

    assert exc.value.discrepancy == {"totalCost": -0.01}
    assert str(exc.value) == TAMPERING_MESSAGE
    assert "Rate discrepancy detected" in caplog.text


def test_base_or_surcharge_mismatch_raises_even_with_matching_total(server):
    client = {
        "totalCost": server.total_cost,
        "baseShippingCost": server.base_shipping_cost - 10,
        "expressSurcharge": server.express_surcharge + 10,
    }

    with pytest.raises(TamperingError) as exc:
        validate_quote(client, server)

    assert exc.value.discrepancy == {"baseShippingCost": -10.0, "expressSurcharge": 10.0}


def test_missing_total_skips_check(server):
    result = validate_quote({"baseShippingCost": 1}, server)

    assert result.checked is False


def test_none_client_skips_check(server):
    assert validate_quote(None, server).checked is False


def test_snake_case_and_string_values_are_accepted(server):
    client = {"total_cost": str(server.total_cost), "express_surcharge": "not a number"}

    result = validate_quote(client, server)

    assert result.checked is True
    assert result.client_snapshot["expressSurcharge"] is None


def test_normalise_client_breakdown_rounds_values():
    snapshot = normalise_client_breakdown({"totalCost": 10.005, "handlingFee": None})

    assert snapshot["totalCost"] == 10.01
    assert snapshot["handlingFee"] is None
