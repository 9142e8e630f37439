from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlparse

import structlog

from offer_engine.db import OfferStore
from offer_engine.errors import InvalidOfferError, OfferNotFoundError
from offer_engine.models import CartLineItem, Product, parse_instant
from offer_engine.refresh import SnapshotRefresher
from offer_engine.validation import lint_offer, validate_offer_payload

logger = structlog.get_logger(__name__)

OFFERS_PREFIX = "/api/offers/"


@dataclass(slots=True)
class AppServices:
    store: OfferStore
    refresher: SnapshotRefresher


def build_services(db_path: str, refresh_seconds: int = 300) -> AppServices:
    store = OfferStore(db_path)
    refresher = SnapshotRefresher(store, interval_seconds=refresh_seconds)
    refresher.refresh()
    return AppServices(store=store, refresher=refresher)


def _offer_id_from(path: str) -> str:
    return path.replace(OFFERS_PREFIX, "", 1).strip("/")


def create_handler(services: AppServices):
    class Handler(BaseHTTPRequestHandler):
        def _send_json(self, payload: dict, status: int = 200) -> None:
            raw = json.dumps(payload).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(raw)))
            self.end_headers()
            self.wfile.write(raw)

        def _read_json_body(self) -> dict:
            size = int(self.headers.get("Content-Length", "0"))
            payload = json.loads(self.rfile.read(size).decode("utf-8")) if size else {}
            if not isinstance(payload, dict):
                raise ValueError("JSON object expected")
            return payload

        def _handle_get(self, path: str) -> bool:
            store = services.store
            if path == "/api/health":
                snapshot = services.refresher.snapshot
                self._send_json(
                    {"state": snapshot.state.value, "offers": len(snapshot.offers), "error": snapshot.error}
                )
                return True
            if path == "/api/offers":
                self._send_json({"offers": [offer.to_dict() for offer in store.list_offers()]})
                return True
            if path.startswith(OFFERS_PREFIX):
                offer = store.get_offer(_offer_id_from(path))
                if offer is None:
                    self._send_json({"error": "offer not found"}, status=404)
                    return True
                self._send_json({"offer": offer.to_dict()})
                return True
            return False

        def _handle_delete(self, path: str) -> bool:
            if not path.startswith(OFFERS_PREFIX):
                return False
            offer_id = _offer_id_from(path)
            if not offer_id:
                self._send_json({"error": "offer id missing"}, status=400)
                return True
            if not services.store.delete_offer(offer_id):
                self._send_json({"error": "offer not found"}, status=404)
                return True
            services.refresher.refresh()
            self._send_json({"ok": True})
            return True

        def _handle_put(self, path: str) -> bool:
            if not path.startswith(OFFERS_PREFIX):
                return False
            changes = self._read_json_body()
            if not changes:
                self._send_json({"error": "update data is required"}, status=400)
                return True
            offer = services.store.update_offer(_offer_id_from(path), changes)
            services.refresher.refresh()
            self._send_json({"ok": True, "offer": offer.to_dict(), "warnings": lint_offer(offer)})
            return True

        def _create_offer(self, payload: dict) -> dict:
            payload = {"id": f"offer_{uuid.uuid4().hex[:12]}", **payload}
            offer = services.store.create_offer(validate_offer_payload(payload))
            services.refresher.refresh()
            return {"ok": True, "offer": offer.to_dict(), "warnings": lint_offer(offer)}

        def _handle_post(self, path: str) -> bool:
            if path == "/api/offers":
                self._send_json(self._create_offer(self._read_json_body()), status=201)
                return True

            if path == "/api/offers/refresh":
                snapshot = services.refresher.refresh()
                self._send_json({"state": snapshot.state.value, "offers": len(snapshot.offers)})
                return True

            if path == "/api/price":
                payload = self._read_json_body()
                now = parse_instant(payload["now"]) if payload.get("now") else None
                quote = services.refresher.snapshot.get_applicable_offer_for_product(
                    Product.from_dict(payload), now=now
                )
                self._send_json(quote.to_dict())
                return True

            if path == "/api/cart":
                payload = self._read_json_body()
                now = parse_instant(payload["now"]) if payload.get("now") else None
                items = [CartLineItem.from_dict(item) for item in payload.get("items", [])]
                result = services.refresher.snapshot.calculate_cart_with_offers(items, now=now)
                self._send_json(result.to_dict())
                return True
            return False

        def _dispatch(self, handler) -> None:
            parsed = urlparse(self.path)
            try:
                if handler(parsed.path):
                    return
            except OfferNotFoundError as exc:
                self._send_json({"error": str(exc)}, status=404)
                return
            except InvalidOfferError as exc:
                self._send_json({"error": str(exc), "problems": exc.problems}, status=400)
                return
            except (KeyError, TypeError, ValueError) as exc:
                logger.info("bad_request", path=parsed.path, error=str(exc))
                self._send_json({"error": f"invalid request: {exc}"}, status=400)
                return
            self.send_error(HTTPStatus.NOT_FOUND)

        def do_GET(self):
            self._dispatch(self._handle_get)

        def do_DELETE(self):
            self._dispatch(self._handle_delete)

        def do_PUT(self):
            self._dispatch(self._handle_put)

        def do_POST(self):
            self._dispatch(self._handle_post)

        def log_message(self, format, *args):
            return

    return Handler


def run_web_server(db_path: str = "offers.db", host: str = "127.0.0.1", port: int = 8000, refresh_seconds: int = 300) -> None:
    services = build_services(db_path, refresh_seconds=refresh_seconds)
    services.refresher.start()
    server = ThreadingHTTPServer((host, port), create_handler(services))
    logger.info("web_server_started", url=f"http://{host}:{port}")
    server.serve_forever()
