import pytest
from conftest import FUTURE, PAST, make_offer

from offer_engine.errors import InvalidOfferError
from offer_engine.models import OfferType
from offer_engine.validation import lint_offer, validate_offer_payload


def test_validate_offer_payload_builds_offer():
    offer = validate_offer_payload(
        {
            "id": "o1",
            "name": "Diwali sale",
            "type": "category",
            "categoryIds": ["electronics"],
            "discountPercent": 10,
            "validFrom": "2026-10-01T00:00:00Z",
            "validTill": "2026-11-01T00:00:00Z",
            "priority": 1,
        }
    )
    assert offer.type is OfferType.CATEGORY
    assert offer.category_ids == ("electronics",)
    assert offer.enabled is True


def test_validate_offer_payload_reports_missing_fields():
    with pytest.raises(InvalidOfferError) as excinfo:
        validate_offer_payload({"id": "o1", "type": "bogus"})
    problems = excinfo.value.problems
    assert "name is required" in problems
    assert "validFrom is required" in problems
    assert "unknown offer type: bogus" in problems


def test_validate_offer_payload_rejects_bad_dates():
    with pytest.raises(InvalidOfferError):
        validate_offer_payload(
            {"id": "o1", "name": "x", "type": "store", "validFrom": "soon", "validTill": "later", "priority": 0}
        )


def test_lint_flags_suspicious_offers():
    assert lint_offer(make_offer(discount_percent=10)) == []
    assert "discountPercent should be between 0 and 100" in lint_offer(make_offer(discount_percent=150))
    assert "offer has no discount configured and will not change any price" in lint_offer(make_offer())
    assert any("validTill" in w for w in lint_offer(make_offer(discount_amount=5, valid_from=FUTURE, valid_till=PAST)))
    assert "product offer has no productIds" in lint_offer(make_offer(offer_type=OfferType.PRODUCT, discount_amount=5))
    assert "conditional offer has no cartValueGreaterThan threshold" in lint_offer(
        make_offer(offer_type=OfferType.CONDITIONAL, discount_amount=5)
    )
