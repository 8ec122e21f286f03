import json
import re
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from freight.errors import NotFoundError, TamperingError, ValidationError
from portal.models import Quote, db
from services import quotes as quote_service

ISSUED = datetime(2026, 3, 2, 12, 0)
CUSTOMER = {"fullName": "Ana Lopez", "email": "ana@example.com", "phone": "555-0100"}


def _quote_count():
    return db.session.execute(select(func.count(Quote.id))).scalar_one()


def _issue(destination_id, **kwargs):
    kwargs.setdefault("now", ISSUED)
    return quote_service.create_quote(CUSTOMER, destination_id, 75, **kwargs)


def test_generate_reference_format():
    reference = quote_service.generate_reference("jfk", ISSUED)

    assert re.fullmatch(r"QCS-20260302-JFK-\d{4}", reference)


def test_create_quote_persists_server_figures(seeded, app_context):
    quote = _issue(seeded.destination_id)

    assert re.fullmatch(r"QCS-20260302-JFK-\d{4}", quote.reference)
    assert quote.total_cost == 320.0
    assert quote.handling_fee == 20.0
    assert quote.status == quote_service.STATUS_PENDING
    assert quote.expires_at == ISSUED + timedelta(days=7)
    assert quote.follow_up_due_at == ISSUED + timedelta(days=3)
    assert quote.estimated_transit_days == 4
    metadata = json.loads(quote.quote_metadata)
    assert metadata["transit_label"] == "3-5 business days"
    assert metadata["rate_breakdown"]["totalCost"] == 320.0
    assert "client_rate_snapshot" not in metadata


def test_create_quote_accepts_matching_client_breakdown(seeded, app_context):
    client = {"totalCost": 330.0, "baseShippingCost": 300.0, "consolidationFee": 10}

    quote = _issue(seeded.destination_id, rate_breakdown=client)

    assert quote.consolidation_fee == 10.0
    assert quote.total_cost == 330.0
    metadata = json.loads(quote.quote_metadata)
    assert metadata["client_rate_snapshot"]["totalCost"] == 330.0


def test_create_quote_rejects_tampered_total(seeded, app_context):
    with pytest.raises(TamperingError) as exc:
        _issue(seeded.destination_id, rate_breakdown={"totalCost": 100.0})

    assert exc.value.discrepancy == {"totalCost": -220.0}
    assert _quote_count() == 0


@pytest.mark.parametrize(
    "customer,message",
    [
        ({}, "Customer name and email are required"),
        ({"fullName": "Ana"}, "Customer name and email are required"),
        ({"fullName": "Ana", "email": "not-an-email"}, "Invalid email address"),
    ],
)
def test_create_quote_validates_customer(seeded, app_context, customer, message):
    with pytest.raises(ValidationError) as exc:
        quote_service.create_quote(customer, seeded.destination_id, 75)

    assert exc.value.message == message


def test_create_quote_requires_weight(seeded, app_context):
    with pytest.raises(ValidationError, match="Destination and weight are required"):
        quote_service.create_quote(CUSTOMER, seeded.destination_id, None)


def test_create_quote_unknown_destination(seeded, app_context):
    with pytest.raises(NotFoundError):
        quote_service.create_quote(CUSTOMER, 9999, 75)


def test_get_quote_is_case_insensitive(seeded, app_context):
    quote = _issue(seeded.destination_id)

    assert quote_service.get_quote(quote.reference.lower()).id == quote.id
    assert quote_service.get_quote("QCS-MISSING") is None


def test_expire_stale_quotes(seeded, app_context):
    quote = _issue(seeded.destination_id)

    assert quote_service.expire_stale_quotes(ISSUED + timedelta(days=6)) == 0
    assert quote_service.expire_stale_quotes(ISSUED + timedelta(days=8)) == 1
    db.session.refresh(quote)
    assert quote.status == quote_service.STATUS_EXPIRED


def test_accept_quote_lifecycle(seeded, app_context):
    quote = _issue(seeded.destination_id)

    accepted = quote_service.accept_quote(quote.reference, ISSUED + timedelta(days=1))
    assert accepted.status == quote_service.STATUS_ACCEPTED
    assert accepted.follow_up_status == "completed"

    with pytest.raises(ValidationError) as exc:
        quote_service.accept_quote(quote.reference, ISSUED + timedelta(days=1))
    assert exc.value.code == "quote_not_pending"


def test_accept_quote_after_expiry(seeded, app_context):
    quote = _issue(seeded.destination_id)

    with pytest.raises(ValidationError) as exc:
        quote_service.accept_quote(quote.reference, ISSUED + timedelta(days=8))

    assert exc.value.code == "quote_expired"
    assert quote_service.get_quote(quote.reference).status == quote_service.STATUS_EXPIRED


def test_accept_unknown_quote(app_context):
    with pytest.raises(NotFoundError):
        quote_service.accept_quote("QCS-NOPE")


def test_serialize_quote(seeded, app_context):
    payload = quote_service.serialize_quote(_issue(seeded.destination_id))

    assert payload["customer"]["fullName"] == "Ana Lopez"
    assert payload["rateBreakdown"]["totalCost"] == 320.0
    assert payload["expiresAt"] == "2026-03-09T12:00:00"
    assert payload["metadata"]["destination"]["airport_code"] == "JFK"


@pytest.mark.parametrize(
    "customer,breakdown,field",
    [
        ("alice", None, "customerInfo"),
        (["Ana", "ana@example.com"], None, "customerInfo"),
        (CUSTOMER, [1, 2], "rateBreakdown"),
        (CUSTOMER, "320.00", "rateBreakdown"),
    ],
)
def test_create_quote_rejects_non_mapping_sections(seeded, app_context, customer, breakdown, field):
    with pytest.raises(ValidationError) as exc:
        quote_service.create_quote(
            customer, seeded.destination_id, 75, rate_breakdown=breakdown
        )

    assert exc.value.field == field
    assert _quote_count() == 0
