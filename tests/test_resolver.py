import pytest
from conftest import NOW, make_offer

from offer_engine.models import CartLineItem, OfferType, Product
from offer_engine.resolver import OfferResolver, discounted_price, resolve_product_offer

PRODUCT = Product(id="p1", price=100.0, category_id="electronics")


def test_no_offers_returns_original_price():
    quote = resolve_product_offer(PRODUCT, [], NOW)
    assert quote.final_price == 100.0
    assert quote.applied_offer is None


def test_percent_offer_discounts_price():
    offer = make_offer(offer_type=OfferType.PRODUCT, product_ids=("p1",), discount_percent=20)
    quote = resolve_product_offer(PRODUCT, [offer], NOW)
    assert quote.final_price == pytest.approx(80.0)
    assert quote.applied_offer == offer


def test_higher_priority_wins_even_with_worse_price():
    weak = make_offer("weak", discount_percent=5, priority=10)
    strong = make_offer("strong", discount_percent=50, priority=5)
    quote = resolve_product_offer(PRODUCT, [strong, weak], NOW)
    assert quote.applied_offer.id == "weak"
    assert quote.final_price == pytest.approx(95.0)


def test_equal_priority_picks_cheapest_price():
    five_percent = make_offer("pct", discount_percent=5, priority=5)
    ten_off = make_offer("flat", discount_amount=10, priority=5)
    quote = resolve_product_offer(PRODUCT, [five_percent, ten_off], NOW)
    assert quote.applied_offer.id == "flat"
    assert quote.final_price == pytest.approx(90.0)


def test_flat_discount_floors_at_zero():
    offer = make_offer(discount_amount=500)
    quote = resolve_product_offer(Product(id="p1", price=300.0), [offer], NOW)
    assert quote.final_price == 0.0


def test_percent_takes_precedence_over_amount():
    offer = make_offer(discount_percent=10, discount_amount=50)
    assert discounted_price(offer, 100.0) == pytest.approx(90.0)


def test_zero_percent_falls_back_to_amount():
    offer = make_offer(discount_percent=0, discount_amount=10)
    assert discounted_price(offer, 100.0) == pytest.approx(90.0)


def test_offer_without_discount_is_still_reported():
    empty = make_offer("empty", priority=10)
    other = make_offer("other", discount_percent=10, priority=1)
    quote = resolve_product_offer(PRODUCT, [other, empty], NOW)
    assert quote.applied_offer.id == "empty"
    assert quote.final_price == 100.0


def test_ineligible_offers_are_ignored():
    offers = [
        make_offer("disabled", discount_percent=50, enabled=False),
        make_offer("other-product", offer_type=OfferType.PRODUCT, product_ids=("p2",), discount_percent=50),
        make_offer("conditional", offer_type=OfferType.CONDITIONAL, threshold=1, discount_percent=50),
    ]
    quote = resolve_product_offer(PRODUCT, offers, NOW)
    assert quote.applied_offer is None
    assert quote.final_price == 100.0


def test_resolver_captures_now_once(now):
    offer = make_offer(discount_percent=10, valid_till=now)
    resolver = OfferResolver([offer], now=now)
    assert resolver.resolve_product(PRODUCT).applied_offer == offer
    assert resolver.now == now


def test_resolver_without_now_keeps_its_first_instant():
    resolver = OfferResolver([])
    captured = resolver.now
    # Expires exactly at the captured instant; any later clock read misses it.
    offer = make_offer(discount_percent=10, valid_till=captured)
    resolver.offers = (offer,)
    items = [CartLineItem("p1", unit_price=100.0, quantity=1)]

    first = resolver.resolve_cart(items)
    second = resolver.resolve_cart(items)
    assert first == second
    assert [applied.id for applied in first.applied_offers] == ["o1"]
    assert resolver.resolve_product(PRODUCT).applied_offer == offer
    assert resolver.now == captured
