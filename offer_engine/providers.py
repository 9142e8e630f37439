from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from offer_engine.models import Offer


class OfferRepository(Protocol):
    source: str

    def fetch_active_offers(self) -> list[Offer]:
        ...


class JsonOfferProvider:
    """Reads a JSON array of offer records from disk."""

    def __init__(self, file_path: str, source: str = "json") -> None:
        self.source = source
        self.file_path = Path(file_path)

    def fetch_active_offers(self) -> list[Offer]:
        payload = json.loads(self.file_path.read_text())
        return [Offer.from_dict(item) for item in payload]


class StaticOfferProvider:
    """Serves a fixed, in-memory offer list."""

    def __init__(self, offers: list[Offer], source: str = "static") -> None:
        self.source = source
        self.offers = list(offers)

    def fetch_active_offers(self) -> list[Offer]:
        return list(self.offers)
