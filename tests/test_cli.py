import json

from storefront import main


def _write(path, payload):
    path.write_text(json.dumps(payload))
    return str(path)


def test_import_and_quote_cart(tmp_path, capsys):
    db = str(tmp_path / "cli.db")
    offers = _write(
        tmp_path / "offers.json",
        [
            {
                "id": "big",
                "name": "Big basket",
                "type": "conditional",
                "condition": {"cartValueGreaterThan": 150},
                "discountPercent": 10,
                "validFrom": "2026-01-01T00:00:00Z",
                "validTill": "2026-12-31T00:00:00Z",
                "priority": 2,
            }
        ],
    )
    items = _write(tmp_path / "cart.json", [{"productId": "p1", "unitPrice": 90, "quantity": 2}])

    assert main(["--db", db, "import-offers", "--file", offers]) == 0
    assert json.loads(capsys.readouterr().out) == {"imported": 1}

    assert main(["--db", db, "cart", "--items", items, "--now", "2026-10-19T00:00:00Z"]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["subTotal"] == 180
    assert result["discount"] == 18
    assert result["total"] == 162


def test_price_without_offers(tmp_path, capsys):
    db = str(tmp_path / "cli.db")
    assert main(["--db", db, "price", "--product-id", "p1", "--price", "42.5"]) == 0
    assert json.loads(capsys.readouterr().out) == {"finalPrice": 42.5, "appliedOffer": None}
