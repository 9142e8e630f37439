from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class OfferType(str, Enum):
    PRODUCT = "product"
    CATEGORY = "category"
    STORE = "store"
    CONDITIONAL = "conditional"


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


_WIRE_NAMES = {
    "valid_from": "validFrom",
    "valid_till": "validTill",
    "discount_percent": "discountPercent",
    "discount_amount": "discountAmount",
    "product_ids": "productIds",
    "category_ids": "categoryIds",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "cart_value_greater_than": "cartValueGreaterThan",
}


def to_wire_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Rename snake_case offer keys to their camelCase wire names."""
    renamed = {_WIRE_NAMES.get(key, key): value for key, value in data.items()}
    if isinstance(renamed.get("condition"), dict):
        renamed["condition"] = to_wire_keys(renamed["condition"])
    return renamed


def _optional_float(value: Any) -> float | None:
    return None if value is None or value == "" else float(value)


@dataclass(slots=True, frozen=True)
class OfferCondition:
    cart_value_greater_than: float | None = None


@dataclass(slots=True, frozen=True)
class Offer:
    id: str
    name: str
    type: OfferType
    valid_from: datetime
    valid_till: datetime
    priority: int = 0
    enabled: bool = True
    discount_percent: float | None = None
    discount_amount: float | None = None
    product_ids: tuple[str, ...] = ()
    category_ids: tuple[str, ...] = ()
    condition: OfferCondition | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        # Naive instants are treated as UTC.
        object.__setattr__(self, "valid_from", parse_instant(self.valid_from))
        object.__setattr__(self, "valid_till", parse_instant(self.valid_till))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Offer":
        condition_payload = data.get("condition")
        condition = None
        if isinstance(condition_payload, dict):
            condition = OfferCondition(
                cart_value_greater_than=_optional_float(
                    _pick(condition_payload, "cartValueGreaterThan", "cart_value_greater_than")
                )
            )
        created_at = _pick(data, "createdAt", "created_at")
        updated_at = _pick(data, "updatedAt", "updated_at")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            type=OfferType(data["type"]),
            valid_from=parse_instant(_pick(data, "validFrom", "valid_from")),
            valid_till=parse_instant(_pick(data, "validTill", "valid_till")),
            priority=int(data.get("priority", 0)),
            enabled=bool(data.get("enabled", True)),
            discount_percent=_optional_float(_pick(data, "discountPercent", "discount_percent")),
            discount_amount=_optional_float(_pick(data, "discountAmount", "discount_amount")),
            product_ids=tuple(str(x) for x in _pick(data, "productIds", "product_ids", default=())),
            category_ids=tuple(str(x) for x in _pick(data, "categoryIds", "category_ids", default=())),
            condition=condition,
            created_at=parse_instant(created_at) if created_at else None,
            updated_at=parse_instant(updated_at) if updated_at else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "validFrom": format_instant(self.valid_from),
            "validTill": format_instant(self.valid_till),
            "priority": self.priority,
            "enabled": self.enabled,
        }
        if self.discount_percent is not None:
            payload["discountPercent"] = self.discount_percent
        if self.discount_amount is not None:
            payload["discountAmount"] = self.discount_amount
        if self.product_ids:
            payload["productIds"] = list(self.product_ids)
        if self.category_ids:
            payload["categoryIds"] = list(self.category_ids)
        if self.condition is not None:
            payload["condition"] = {"cartValueGreaterThan": self.condition.cart_value_greater_than}
        if self.created_at is not None:
            payload["createdAt"] = format_instant(self.created_at)
        if self.updated_at is not None:
            payload["updatedAt"] = format_instant(self.updated_at)
        return payload


@dataclass(slots=True, frozen=True)
class Product:
    id: str
    price: float
    category_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        product_id = _pick(data, "id", "productId", "product_id")
        if product_id is None:
            raise KeyError("id")
        category_id = _pick(data, "categoryId", "category_id")
        return cls(
            id=str(product_id),
            price=float(data["price"]),
            category_id=str(category_id) if category_id else None,
        )


@dataclass(slots=True, frozen=True)
class ProductQuote:
    final_price: float
    applied_offer: Offer | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "finalPrice": self.final_price,
            "appliedOffer": self.applied_offer.to_dict() if self.applied_offer else None,
        }


@dataclass(slots=True, frozen=True)
class CartLineItem:
    product_id: str
    unit_price: float
    quantity: int
    category_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLineItem":
        category_id = _pick(data, "categoryId", "category_id")
        return cls(
            product_id=str(_pick(data, "productId", "product_id")),
            unit_price=float(_pick(data, "unitPrice", "unit_price")),
            quantity=int(data["quantity"]),
            category_id=str(category_id) if category_id else None,
        )


@dataclass(slots=True, frozen=True)
class ResolvedLineItem:
    product_id: str
    unit_price: float
    quantity: int
    discounted_price: float
    item_discount: float
    category_id: str | None = None
    applied_offer_id: str | None = None

    @classmethod
    def unchanged(cls, item: CartLineItem) -> "ResolvedLineItem":
        return cls(
            product_id=item.product_id,
            unit_price=item.unit_price,
            quantity=item.quantity,
            category_id=item.category_id,
            discounted_price=item.unit_price,
            item_discount=0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "productId": self.product_id,
            "unitPrice": self.unit_price,
            "quantity": self.quantity,
            "discountedPrice": self.discounted_price,
            "itemDiscount": self.item_discount,
        }
        if self.category_id is not None:
            payload["categoryId"] = self.category_id
        if self.applied_offer_id is not None:
            payload["appliedOfferId"] = self.applied_offer_id
        return payload


@dataclass(slots=True, frozen=True)
class CartResult:
    items: tuple[ResolvedLineItem, ...]
    sub_total: float
    discount: float
    total: float
    applied_offers: tuple[Offer, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "subTotal": self.sub_total,
            "discount": self.discount,
            "total": self.total,
            "appliedOffers": [offer.to_dict() for offer in self.applied_offers],
        }

