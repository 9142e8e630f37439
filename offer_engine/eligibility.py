from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Final

from offer_engine.models import Offer, OfferType


@dataclass(slots=True, frozen=True)
class ProductMatch:
    """Per-product eligibility context."""

    product_id: str
    category_id: str | None = None


class _GlobalPass:
    __slots__ = ()

    def __repr__(self) -> str:
        return "GLOBAL_PASS"


GLOBAL_PASS: Final = _GlobalPass()

EligibilityContext = ProductMatch | _GlobalPass


def is_active(offer: Offer, now: datetime) -> bool:
    return offer.enabled and offer.valid_from <= now <= offer.valid_till


def _matches_product(offer: Offer, context: ProductMatch) -> bool:
    if offer.type is OfferType.STORE:
        return True
    if offer.type is OfferType.PRODUCT:
        return context.product_id in offer.product_ids
    if offer.type is OfferType.CATEGORY:
        return bool(context.category_id) and context.category_id in offer.category_ids
    return False


def is_eligible(offer: Offer, now: datetime, context: EligibilityContext) -> bool:
    if not is_active(offer, now):
        return False
    if isinstance(context, ProductMatch):
        return _matches_product(offer, context)
    return offer.type in (OfferType.STORE, OfferType.CONDITIONAL)
