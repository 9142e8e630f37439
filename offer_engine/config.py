from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Settings:
    db_path: str = "offers.db"
    host: str = "127.0.0.1"
    port: int = 8000
    refresh_seconds: int = 300
    environment: str = "development"


def load_settings() -> Settings:
    return Settings(
        db_path=os.getenv("OFFER_ENGINE_DB", "offers.db"),
        host=os.getenv("OFFER_ENGINE_HOST", "127.0.0.1"),
        port=int(os.getenv("OFFER_ENGINE_PORT", "8000")),
        refresh_seconds=int(os.getenv("OFFER_ENGINE_REFRESH_SECONDS", "300")),
        environment=os.getenv("OFFER_ENGINE_ENV", "development").lower(),
    )
