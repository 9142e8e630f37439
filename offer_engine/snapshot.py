from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

import structlog

from offer_engine.models import CartLineItem, CartResult, Offer, Product, ProductQuote, ResolvedLineItem
from offer_engine.providers import OfferRepository
from offer_engine.resolver import OfferResolver

logger = structlog.get_logger(__name__)


class SnapshotState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class OfferSnapshot:
    """An immutable view of the offer list handed to the pricing functions.

    Until a snapshot is ready (still loading, or the last fetch failed)
    every price is reported unchanged with no discount.
    """

    offers: tuple[Offer, ...] = ()
    state: SnapshotState = SnapshotState.LOADING
    error: str | None = None

    @classmethod
    def loading(cls) -> "OfferSnapshot":
        return cls()

    @classmethod
    def ready(cls, offers: Iterable[Offer]) -> "OfferSnapshot":
        return cls(offers=tuple(offers), state=SnapshotState.READY)

    @classmethod
    def failed(cls, error: str) -> "OfferSnapshot":
        return cls(offers=(), state=SnapshotState.FAILED, error=error)

    @property
    def is_ready(self) -> bool:
        return self.state is SnapshotState.READY

    def get_applicable_offer_for_product(self, product: Product, now: datetime | None = None) -> ProductQuote:
        if not self.is_ready:
            return ProductQuote(final_price=product.price)
        return OfferResolver(self.offers, now=now).resolve_product(product)

    def calculate_cart_with_offers(self, items: Iterable[CartLineItem], now: datetime | None = None) -> CartResult:
        items = tuple(items)
        if not self.is_ready:
            sub_total = round(sum(item.unit_price * item.quantity for item in items), 2)
            return CartResult(
                items=tuple(ResolvedLineItem.unchanged(item) for item in items),
                sub_total=sub_total,
                discount=0.0,
                total=sub_total,
                applied_offers=(),
            )
        return OfferResolver(self.offers, now=now).resolve_cart(items)


def load_snapshot(repository: OfferRepository) -> OfferSnapshot:
    """Fetch offers into a ready snapshot; a failed fetch yields an empty, failed one."""
    try:
        offers = repository.fetch_active_offers()
    except Exception as exc:  # noqa: BLE001
        logger.warning("offer_fetch_failed", source=getattr(repository, "source", "unknown"), exc_info=True)
        return OfferSnapshot.failed(str(exc) or exc.__class__.__name__)
    logger.info("offers_loaded", source=getattr(repository, "source", "unknown"), count=len(offers))
    return OfferSnapshot.ready(offers)
