from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from offer_engine.errors import OfferNotFoundError
from offer_engine.models import Offer, OfferCondition, OfferType, format_instant, parse_instant, to_wire_keys


class OfferStore:
    """sqlite-backed offer records; also usable as an offer repository."""

    source = "sqlite"

    def __init__(self, path: str = "offers.db") -> None:
        self.path = Path(path)
        self._init_schema()

    @contextmanager
    def connect(self):
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self.connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS offers (
                    offer_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    type TEXT NOT NULL,
                    discount_percent REAL,
                    discount_amount REAL,
                    product_ids TEXT NOT NULL DEFAULT '[]',
                    category_ids TEXT NOT NULL DEFAULT '[]',
                    cart_value_greater_than REAL,
                    has_condition INTEGER NOT NULL DEFAULT 0,
                    valid_from TEXT NOT NULL,
                    valid_till TEXT NOT NULL,
                    priority INTEGER NOT NULL DEFAULT 0,
                    enabled INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT,
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS refresh_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source TEXT NOT NULL,
                    refreshed_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    status TEXT NOT NULL,
                    detail TEXT
                );
                """
            )

    @staticmethod
    def _row_to_offer(row: sqlite3.Row) -> Offer:
        condition = None
        if row["has_condition"]:
            condition = OfferCondition(cart_value_greater_than=row["cart_value_greater_than"])
        return Offer(
            id=row["offer_id"],
            name=row["name"],
            type=OfferType(row["type"]),
            discount_percent=row["discount_percent"],
            discount_amount=row["discount_amount"],
            product_ids=tuple(json.loads(row["product_ids"])),
            category_ids=tuple(json.loads(row["category_ids"])),
            condition=condition,
            valid_from=parse_instant(row["valid_from"]),
            valid_till=parse_instant(row["valid_till"]),
            priority=int(row["priority"]),
            enabled=bool(row["enabled"]),
            created_at=parse_instant(row["created_at"]) if row["created_at"] else None,
            updated_at=parse_instant(row["updated_at"]) if row["updated_at"] else None,
        )

    @staticmethod
    def _offer_params(offer: Offer) -> tuple:
        return (
            offer.id,
            offer.name,
            offer.type.value,
            offer.discount_percent,
            offer.discount_amount,
            json.dumps(list(offer.product_ids)),
            json.dumps(list(offer.category_ids)),
            offer.condition.cart_value_greater_than if offer.condition else None,
            int(offer.condition is not None),
            format_instant(offer.valid_from),
            format_instant(offer.valid_till),
            offer.priority,
            int(offer.enabled),
            format_instant(offer.created_at),
            format_instant(offer.updated_at),
        )

    def _upsert(self, conn: sqlite3.Connection, offers: Iterable[Offer]) -> None:
        conn.executemany(
            """
            INSERT INTO offers(
                offer_id, name, type, discount_percent, discount_amount,
                product_ids, category_ids, cart_value_greater_than, has_condition,
                valid_from, valid_till, priority, enabled, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(offer_id) DO UPDATE SET
                name=excluded.name,
                type=excluded.type,
                discount_percent=excluded.discount_percent,
                discount_amount=excluded.discount_amount,
                product_ids=excluded.product_ids,
                category_ids=excluded.category_ids,
                cart_value_greater_than=excluded.cart_value_greater_than,
                has_condition=excluded.has_condition,
                valid_from=excluded.valid_from,
                valid_till=excluded.valid_till,
                priority=excluded.priority,
                enabled=excluded.enabled,
                created_at=COALESCE(offers.created_at, excluded.created_at),
                updated_at=excluded.updated_at
            """,
            [self._offer_params(offer) for offer in offers],
        )

    def create_offer(self, offer: Offer) -> Offer:
        now = datetime.now(timezone.utc)
        stored = replace(offer, created_at=now, updated_at=now)
        with self.connect() as conn:
            self._upsert(conn, [stored])
        return stored

    def upsert_offers(self, offers: Iterable[Offer]) -> int:
        now = datetime.now(timezone.utc)
        stamped = [replace(offer, created_at=offer.created_at or now, updated_at=now) for offer in offers]
        with self.connect() as conn:
            self._upsert(conn, stamped)
        return len(stamped)

    def get_offer(self, offer_id: str) -> Offer | None:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM offers WHERE offer_id = ?", (offer_id,)).fetchone()
        return self._row_to_offer(row) if row else None

    def list_offers(self) -> list[Offer]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM offers ORDER BY priority DESC, offer_id").fetchall()
        return [self._row_to_offer(row) for row in rows]

    def update_offer(self, offer_id: str, changes: dict[str, Any]) -> Offer:
        with self.connect() as conn:
            # Read and write under one write lock.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT * FROM offers WHERE offer_id = ?", (offer_id,)).fetchone()
            if row is None:
                raise OfferNotFoundError(offer_id)
            existing = self._row_to_offer(row)
            merged = {**existing.to_dict(), **to_wire_keys(changes), "id": offer_id}
            updated = replace(
                Offer.from_dict(merged),
                created_at=existing.created_at,
                updated_at=datetime.now(timezone.utc),
            )
            self._upsert(conn, [updated])
        return updated

    def delete_offer(self, offer_id: str) -> bool:
        with self.connect() as conn:
            result = conn.execute("DELETE FROM offers WHERE offer_id = ?", (offer_id,))
        return result.rowcount > 0

    def fetch_active_offers(self) -> list[Offer]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM offers WHERE enabled = 1 ORDER BY priority DESC, offer_id"
            ).fetchall()
        return [self._row_to_offer(row) for row in rows]

    def log_refresh(self, source: str, status: str, detail: str = "") -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO refresh_log(source, status, detail) VALUES (?, ?, ?)",
                (source, status, detail),
            )

    def fetch_refresh_log(self, limit: int = 50) -> list[sqlite3.Row]:
        with self.connect() as conn:
            return conn.execute(
                "SELECT id, source, refreshed_at, status, detail FROM refresh_log ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
