from __future__ import annotations

import json
import threading
from http.server import ThreadingHTTPServer
from urllib.error import HTTPError
from urllib.request import Request, urlopen

import pytest

from offer_engine.web import build_services, create_handler

NOW = "2026-10-19T12:00:00Z"


def _start_server(db_path: str):
    services = build_services(db_path)
    server = ThreadingHTTPServer(("127.0.0.1", 0), create_handler(services))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def _call(base: str, path: str, method: str = "GET", payload: dict | list | None = None):
    data = json.dumps(payload).encode("utf-8") if payload is not None else None
    req = Request(f"{base}{path}", data=data, headers={"Content-Type": "application/json"}, method=method)
    with urlopen(req) as response:
        return response.status, json.loads(response.read().decode("utf-8"))


@pytest.fixture
def base(tmp_path):
    server = _start_server(str(tmp_path / "test.db"))
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    server.server_close()


def test_create_offer_and_price_cart(base):
    status, body = _call(
        base,
        "/api/offers",
        method="POST",
        payload={
            "id": "o1",
            "name": "Electronics week",
            "type": "category",
            "categoryIds": ["electronics"],
            "discountPercent": 10,
            "validFrom": "2026-10-01T00:00:00Z",
            "validTill": "2026-11-01T00:00:00Z",
            "priority": 1,
            "enabled": True,
        },
    )
    assert status == 201
    assert body["offer"]["id"] == "o1"
    assert body["warnings"] == []

    _, health = _call(base, "/api/health")
    assert health == {"state": "ready", "offers": 1, "error": None}

    _, cart = _call(
        base,
        "/api/cart",
        method="POST",
        payload={
            "now": NOW,
            "items": [{"productId": "p1", "unitPrice": 1000, "quantity": 1, "categoryId": "electronics"}],
        },
    )
    assert cart["subTotal"] == 1000
    assert cart["discount"] == 100
    assert cart["total"] == 900
    assert cart["items"][0]["appliedOfferId"] == "o1"
    assert [offer["id"] for offer in cart["appliedOffers"]] == ["o1"]

    _, quote = _call(
        base, "/api/price", method="POST", payload={"id": "p2", "price": 50, "categoryId": "books", "now": NOW}
    )
    assert quote == {"finalPrice": 50, "appliedOffer": None}


def test_offer_crud(base):
    _call(
        base,
        "/api/offers",
        method="POST",
        payload={
            "id": "s1",
            "name": "Store wide",
            "type": "store",
            "validFrom": "2026-10-01T00:00:00Z",
            "validTill": "2026-11-01T00:00:00Z",
            "priority": 0,
        },
    )
    _, updated = _call(base, "/api/offers/s1", method="PUT", payload={"discountAmount": 5})
    assert updated["offer"]["discountAmount"] == 5
    assert updated["warnings"] == []

    _, listing = _call(base, "/api/offers")
    assert [offer["id"] for offer in listing["offers"]] == ["s1"]

    _, deleted = _call(base, "/api/offers/s1", method="DELETE")
    assert deleted == {"ok": True}

    with pytest.raises(HTTPError) as excinfo:
        _call(base, "/api/offers/s1")
    assert excinfo.value.code == 404


def test_invalid_offer_is_rejected(base):
    with pytest.raises(HTTPError) as excinfo:
        _call(base, "/api/offers", method="POST", payload={"type": "store"})
    assert excinfo.value.code == 400
    body = json.loads(excinfo.value.read().decode("utf-8"))
    assert "name is required" in body["problems"]


def test_update_missing_offer_returns_404(base):
    with pytest.raises(HTTPError) as excinfo:
        _call(base, "/api/offers/nope", method="PUT", payload={"priority": 3})
    assert excinfo.value.code == 404


@pytest.mark.parametrize(
    ("method", "path"),
    [("POST", "/api/cart"), ("POST", "/api/price"), ("POST", "/api/offers"), ("PUT", "/api/offers/o1")],
)
def test_non_object_json_body_returns_400(base, method, path):
    with pytest.raises(HTTPError) as excinfo:
        _call(base, path, method=method, payload=[1])
    assert excinfo.value.code == 400
    body = json.loads(excinfo.value.read().decode("utf-8"))
    assert "JSON object expected" in body["error"]
