"""Coordinates the relay components for the lifetime of the application."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Tuple

from datastore.snapshot_store import SnapshotStore
from datastore.subscriber_registry import SubscriberRegistry
from models.snapshot import Snapshot, utc_timestamp
from services.broadcaster import Broadcaster, BroadcastResult
from services.errors import ValidationError
from services.fetcher import SourceFetcher
from services.poll_loop import PollLoop
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthReport:
    uptime: float
    registered: int
    last_update: Optional[str]


class RelayService:
    """Owns the snapshot store, subscriber registry and background poll loop."""

    def __init__(
        self,
        store: SnapshotStore,
        registry: SubscriberRegistry,
        fetcher: SourceFetcher,
        broadcaster: Broadcaster,
        poll_interval: float = 2.0,
    ) -> None:
        self.store = store
        self.registry = registry
        self.fetcher = fetcher
        self.broadcaster = broadcaster
        self.poll_loop = PollLoop(
            fetcher=fetcher,
            store=store,
            registry=registry,
            broadcaster=broadcaster,
            interval=poll_interval,
        )
        self._started_at = time.monotonic()

    def start(self) -> None:
        self.poll_loop.start()

    def shutdown(self) -> None:
        """Stop polling and release outbound HTTP resources."""
        self.poll_loop.stop(timeout=self.fetcher.timeout + 1.0)
        self.broadcaster.shutdown()
        self.fetcher.close()

    def latest(self) -> Tuple[Snapshot, Optional[str]]:
        return self.store.read()

    def register(self, api_key: Any, esp_url: Any) -> int:
        return self.registry.register(api_key, esp_url)

    def send(self, api_key: Any, data: Any) -> BroadcastResult:
        """Push caller-supplied data to every registered subscriber and wait for the tally."""
        self.registry.authorize(api_key)
        if _is_missing(data):
            raise ValidationError("Missing data in request body")

        payload = data
        if isinstance(data, dict) and "timestamp" not in data:
            payload = {**data, "timestamp": utc_timestamp()}

        result = self.broadcaster.fan_out(payload, self.registry.current_list())
        logger.info(
            "Manual broadcast complete",
            extra={"sent": result.sent, "failed": result.failed, "total": result.total},
        )
        return result

    def health(self) -> HealthReport:
        return HealthReport(
            uptime=time.monotonic() - self._started_at,
            registered=self.registry.size(),
            last_update=self.store.last_updated,
        )


def _is_missing(data: Any) -> bool:
    # JSON objects and arrays count as present even when empty.
    if isinstance(data, (dict, list)):
        return False
    return not data


@lru_cache
def build_default_relay() -> RelayService:
    """Factory that wires the relay from environment settings."""
    settings = get_settings()
    return RelayService(
        store=SnapshotStore(),
        registry=SubscriberRegistry(api_key=settings.api_key),
        fetcher=SourceFetcher(settings.source_url, timeout=settings.request_timeout),
        broadcaster=Broadcaster(
            timeout=settings.request_timeout, workers=settings.broadcast_workers
        ),
        poll_interval=settings.poll_interval,
    )
