from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

import structlog

from offer_engine.eligibility import GLOBAL_PASS, ProductMatch, is_eligible
from offer_engine.models import (
    CartLineItem,
    CartResult,
    Offer,
    OfferType,
    Product,
    ProductQuote,
    ResolvedLineItem,
    parse_instant,
)

logger = structlog.get_logger(__name__)


class DiscountEvaluator(Protocol):
    def applies(self, offer: Offer) -> bool:
        """Return True when the offer carries this kind of discount."""

    def unit_price(self, price: float, offer: Offer) -> float:
        """Return the discounted unit price for a single product."""

    def cart_discount(self, running_total: float, offer: Offer) -> float:
        """Return the discount amount taken off a running cart total."""


class PercentDiscountEvaluator:
    def applies(self, offer: Offer) -> bool:
        return bool(offer.discount_percent)

    def unit_price(self, price: float, offer: Offer) -> float:
        return price * (1 - offer.discount_percent / 100)

    def cart_discount(self, running_total: float, offer: Offer) -> float:
        return running_total * (offer.discount_percent / 100)


class FlatDiscountEvaluator:
    def applies(self, offer: Offer) -> bool:
        return bool(offer.discount_amount)

    def unit_price(self, price: float, offer: Offer) -> float:
        return max(0.0, price - offer.discount_amount)

    def cart_discount(self, running_total: float, offer: Offer) -> float:
        return offer.discount_amount


# Order matters: a percent discount takes precedence over a flat amount.
DEFAULT_EVALUATORS: tuple[DiscountEvaluator, ...] = (
    PercentDiscountEvaluator(),
    FlatDiscountEvaluator(),
)


def _evaluator_for(offer: Offer, evaluators: Sequence[DiscountEvaluator]) -> DiscountEvaluator | None:
    return next((evaluator for evaluator in evaluators if evaluator.applies(offer)), None)


def discounted_price(
    offer: Offer,
    price: float,
    evaluators: Sequence[DiscountEvaluator] = DEFAULT_EVALUATORS,
) -> float:
    """Hypothetical unit price after ``offer``; unchanged when it carries no discount."""
    evaluator = _evaluator_for(offer, evaluators)
    if evaluator is None:
        return price
    return evaluator.unit_price(price, offer)


def resolve_product_offer(
    product: Product,
    offers: Iterable[Offer],
    now: datetime,
    evaluators: Sequence[DiscountEvaluator] = DEFAULT_EVALUATORS,
) -> ProductQuote:
    """Pick the single best eligible offer for a product.

    Highest priority wins; among equal priorities the offer producing the
    lowest price wins. An offer with no discount configured can still win
    and is reported as applied even though the price does not change.
    """
    now = parse_instant(now)
    context = ProductMatch(product_id=product.id, category_id=product.category_id)
    candidates = [offer for offer in offers if is_eligible(offer, now, context)]
    if not candidates:
        return ProductQuote(final_price=product.price)

    priced = [(offer, discounted_price(offer, product.price, evaluators)) for offer in candidates]
    best_offer, best_price = min(priced, key=lambda pair: (-pair[0].priority, pair[1]))
    return ProductQuote(final_price=max(0.0, best_price), applied_offer=best_offer)


def _global_offer_applies(offer: Offer, running_total: float) -> bool:
    if offer.type is OfferType.STORE:
        return True
    if offer.type is OfferType.CONDITIONAL:
        threshold = offer.condition.cart_value_greater_than if offer.condition else None
        return threshold is not None and running_total > threshold
    return False


def calculate_cart_discounts(
    items: Iterable[CartLineItem],
    offers: Iterable[Offer],
    now: datetime,
    evaluators: Sequence[DiscountEvaluator] = DEFAULT_EVALUATORS,
) -> CartResult:
    """Resolve per-item offers, then compound eligible global offers in priority order."""
    offers = tuple(offers)
    now = parse_instant(now)
    sub_total = 0.0
    total_discount = 0.0
    resolved: list[ResolvedLineItem] = []
    applied: dict[str, Offer] = {}

    for item in items:
        sub_total += item.unit_price * item.quantity
        product = Product(id=item.product_id, price=item.unit_price, category_id=item.category_id)
        quote = resolve_product_offer(product, offers, now, evaluators)

        if quote.applied_offer is not None and quote.final_price < item.unit_price:
            item_discount = (item.unit_price - quote.final_price) * item.quantity
            total_discount += item_discount
            applied.setdefault(quote.applied_offer.id, quote.applied_offer)
            resolved.append(
                ResolvedLineItem(
                    product_id=item.product_id,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    category_id=item.category_id,
                    discounted_price=quote.final_price,
                    item_discount=item_discount,
                    applied_offer_id=quote.applied_offer.id,
                )
            )
        else:
            resolved.append(ResolvedLineItem.unchanged(item))

    global_offers = sorted(
        (offer for offer in offers if is_eligible(offer, now, GLOBAL_PASS)),
        key=lambda offer: offer.priority,
        reverse=True,
    )
    running_total = sub_total - total_discount
    for offer in global_offers:
        if not _global_offer_applies(offer, running_total):
            continue
        evaluator = _evaluator_for(offer, evaluators)
        discount = evaluator.cart_discount(running_total, offer) if evaluator else 0.0
        if discount <= 0:
            continue
        total_discount += discount
        running_total -= discount
        applied.setdefault(offer.id, offer)

    total = max(0.0, sub_total - total_discount)
    return CartResult(
        items=tuple(resolved),
        sub_total=round(sub_total, 2),
        discount=round(total_discount, 2),
        total=round(total, 2),
        applied_offers=tuple(applied.values()),
    )


class OfferResolver:
    """Offer resolution over one offer snapshot and one captured instant."""

    def __init__(
        self,
        offers: Iterable[Offer],
        now: datetime | None = None,
        evaluators: Sequence[DiscountEvaluator] | None = None,
    ):
        self.offers = tuple(offers)
        self.now = parse_instant(now) if now is not None else datetime.now(timezone.utc)
        self.evaluators = tuple(evaluators or DEFAULT_EVALUATORS)

    def resolve_product(self, product: Product) -> ProductQuote:
        return resolve_product_offer(product, self.offers, self.now, self.evaluators)

    def resolve_cart(self, items: Iterable[CartLineItem]) -> CartResult:
        result = calculate_cart_discounts(items, self.offers, self.now, self.evaluators)
        logger.debug(
            "cart_resolved",
            items=len(result.items),
            sub_total=result.sub_total,
            discount=result.discount,
            applied_offers=[offer.id for offer in result.applied_offers],
        )
        return result
