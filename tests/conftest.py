"""Shared fixtures for offer engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from offer_engine.models import Offer, OfferCondition, OfferType

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=30)
FUTURE = NOW + timedelta(days=30)


def make_offer(offer_id="o1", offer_type=OfferType.STORE, threshold=None, **overrides) -> Offer:
    fields = {
        "id": offer_id,
        "name": f"Offer {offer_id}",
        "type": offer_type,
        "valid_from": PAST,
        "valid_till": FUTURE,
        "priority": 1,
        "enabled": True,
    }
    if threshold is not None:
        fields["condition"] = OfferCondition(cart_value_greater_than=threshold)
    fields.update(overrides)
    return Offer(**fields)


@pytest.fixture
def now():
    return NOW
