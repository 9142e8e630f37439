from __future__ import annotations

import threading

import structlog

from offer_engine.providers import OfferRepository
from offer_engine.snapshot import OfferSnapshot, load_snapshot

logger = structlog.get_logger(__name__)


class SnapshotRefresher:
    """Holds the current offer snapshot and replaces it on a cadence."""

    def __init__(self, repository: OfferRepository, interval_seconds: int = 300) -> None:
        self.repository = repository
        self.interval_seconds = interval_seconds
        self._snapshot = OfferSnapshot.loading()
        self._lock = threading.Lock()
        self._stop = threading.Event()

    @property
    def snapshot(self) -> OfferSnapshot:
        with self._lock:
            return self._snapshot

    def refresh(self) -> OfferSnapshot:
        snapshot = load_snapshot(self.repository)
        with self._lock:
            self._snapshot = snapshot
        log_refresh = getattr(self.repository, "log_refresh", None)
        if log_refresh is not None:
            if snapshot.is_ready:
                log_refresh(self.repository.source, "ok", f"offers={len(snapshot.offers)}")
            else:
                log_refresh(self.repository.source, "failed", snapshot.error or "")
        return snapshot

    def run_forever(self) -> None:
        logger.info("offer_refresh_started", interval_seconds=self.interval_seconds)
        while not self._stop.is_set():
            self.refresh()
            self._stop.wait(self.interval_seconds)

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run_forever, daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        self._stop.set()
