"""Authoring-time checks for offer records.

Nothing here runs inside the resolver: malformed offers are still
consumed exactly as stored. These checks guard the places that create
or edit offers (HTTP API, CLI import).
"""

from __future__ import annotations

from typing import Any

from offer_engine.errors import InvalidOfferError
from offer_engine.models import Offer, OfferType, to_wire_keys

REQUIRED_FIELDS = ("name", "type", "validFrom", "validTill", "priority")


def validate_offer_payload(payload: dict[str, Any]) -> Offer:
    """Check required fields and build an Offer, raising InvalidOfferError."""
    data = to_wire_keys(payload)
    problems = [f"{name} is required" for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
    if data.get("type") and data["type"] not in {t.value for t in OfferType}:
        problems.append(f"unknown offer type: {data['type']}")
    if not data.get("id"):
        problems.append("id is required")
    if problems:
        raise InvalidOfferError(problems)
    try:
        return Offer.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise InvalidOfferError([str(exc)]) from exc


def lint_offer(offer: Offer) -> list[str]:
    """Return warnings for offers that are legal but probably mis-authored."""
    warnings: list[str] = []
    if offer.discount_percent is not None and not 0 <= offer.discount_percent <= 100:
        warnings.append("discountPercent should be between 0 and 100")
    if offer.discount_amount is not None and offer.discount_amount < 0:
        warnings.append("discountAmount should not be negative")
    if not offer.discount_percent and not offer.discount_amount:
        warnings.append("offer has no discount configured and will not change any price")
    if offer.valid_from > offer.valid_till:
        warnings.append("validFrom is after validTill; the offer can never be active")
    if offer.type is OfferType.PRODUCT and not offer.product_ids:
        warnings.append("product offer has no productIds")
    if offer.type is OfferType.CATEGORY and not offer.category_ids:
        warnings.append("category offer has no categoryIds")
    if offer.type is OfferType.CONDITIONAL and (
        offer.condition is None or offer.condition.cart_value_greater_than is None
    ):
        warnings.append("conditional offer has no cartValueGreaterThan threshold")
    return warnings
