from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from offer_engine.config import load_settings
from offer_engine.db import OfferStore
from offer_engine.errors import OfferEngineError
from offer_engine.logging import configure_logging
from offer_engine.models import CartLineItem, Product, parse_instant
from offer_engine.providers import JsonOfferProvider
from offer_engine.snapshot import load_snapshot
from offer_engine.validation import lint_offer, validate_offer_payload
from offer_engine.web import run_web_server


def _print(payload) -> None:
    print(json.dumps(payload, indent=2))


def _now(args: argparse.Namespace):
    return parse_instant(args.now) if args.now else None


def cmd_import_offers(args: argparse.Namespace) -> None:
    store = OfferStore(args.db)
    offers = JsonOfferProvider(args.file).fetch_active_offers()
    count = store.upsert_offers(offers)
    store.log_refresh("import", "ok", f"offers={count}")
    _print({"imported": count})


def cmd_list_offers(args: argparse.Namespace) -> None:
    store = OfferStore(args.db)
    _print([offer.to_dict() for offer in store.list_offers()])


def cmd_add_offer(args: argparse.Namespace) -> None:
    store = OfferStore(args.db)
    payload = json.loads(Path(args.file).read_text())
    offer = store.create_offer(validate_offer_payload(payload))
    _print({"offer": offer.to_dict(), "warnings": lint_offer(offer)})


def cmd_delete_offer(args: argparse.Namespace) -> None:
    store = OfferStore(args.db)
    _print({"deleted": store.delete_offer(args.id)})


def cmd_lint_offers(args: argparse.Namespace) -> None:
    store = OfferStore(args.db)
    report = {offer.id: lint_offer(offer) for offer in store.list_offers()}
    _print({offer_id: warnings for offer_id, warnings in report.items() if warnings})


def cmd_price(args: argparse.Namespace) -> None:
    snapshot = load_snapshot(OfferStore(args.db))
    product = Product(id=args.product_id, price=args.price, category_id=args.category_id)
    _print(snapshot.get_applicable_offer_for_product(product, now=_now(args)).to_dict())


def cmd_cart(args: argparse.Namespace) -> None:
    snapshot = load_snapshot(OfferStore(args.db))
    payload = json.loads(Path(args.items).read_text())
    items = [CartLineItem.from_dict(item) for item in payload]
    _print(snapshot.calculate_cart_with_offers(items, now=_now(args)).to_dict())


def cmd_serve(args: argparse.Namespace) -> None:
    settings = load_settings()
    run_web_server(
        db_path=args.db,
        host=args.host or settings.host,
        port=args.port or settings.port,
        refresh_seconds=settings.refresh_seconds,
    )


def build_parser() -> argparse.ArgumentParser:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Storefront offer and discount engine")
    parser.add_argument("--db", default=settings.db_path)

    sub = parser.add_subparsers(required=True)

    imports = sub.add_parser("import-offers")
    imports.add_argument("--file", required=True)
    imports.set_defaults(func=cmd_import_offers)

    listing = sub.add_parser("list-offers")
    listing.set_defaults(func=cmd_list_offers)

    add = sub.add_parser("add-offer")
    add.add_argument("--file", required=True)
    add.set_defaults(func=cmd_add_offer)

    delete = sub.add_parser("delete-offer")
    delete.add_argument("--id", required=True)
    delete.set_defaults(func=cmd_delete_offer)

    lint = sub.add_parser("lint-offers")
    lint.set_defaults(func=cmd_lint_offers)

    price = sub.add_parser("price")
    price.add_argument("--product-id", required=True)
    price.add_argument("--price", type=float, required=True)
    price.add_argument("--category-id")
    price.add_argument("--now")
    price.set_defaults(func=cmd_price)

    cart = sub.add_parser("cart")
    cart.add_argument("--items", required=True)
    cart.add_argument("--now")
    cart.set_defaults(func=cmd_cart)

    serve = sub.add_parser("serve")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(load_settings().environment)
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except OfferEngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
