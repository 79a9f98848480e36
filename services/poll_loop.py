"""Timer-driven poll of the source followed by a fire-and-forget broadcast."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future
from threading import Event, Lock, Thread
from typing import Optional

from datastore.snapshot_store import SnapshotStore
from datastore.subscriber_registry import SubscriberRegistry
from models.snapshot import utc_timestamp
from services.broadcaster import Broadcaster, BroadcastResult
from services.errors import FetchError
from services.fetcher import SourceFetcher

logger = logging.getLogger(__name__)


class PollLoop:
    """Runs ``tick`` on a fixed period in a background thread until stopped."""

    def __init__(
        self,
        fetcher: SourceFetcher,
        store: SnapshotStore,
        registry: SubscriberRegistry,
        broadcaster: Broadcaster,
        interval: float = 2.0,
    ) -> None:
        self.fetcher = fetcher
        self.store = store
        self.registry = registry
        self.broadcaster = broadcaster
        self.interval = interval
        self._stop = Event()
        self._thread: Optional[Thread] = None
        self._thread_lock = Lock()

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        with self._thread_lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = Thread(target=self._run, name="poll-loop", daemon=True)
            self._thread.start()
        logger.info("Poll loop started", extra={"source_url": self.fetcher.source_url})

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        with self._thread_lock:
            thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            logger.info("Poll loop stopped")

    def tick(self) -> Optional[Future[BroadcastResult]]:
        """Run one poll cycle.

        Returns the pending broadcast when one was started, otherwise ``None``.
        """
        try:
            snapshot = self.fetcher.fetch()
        except FetchError as exc:
            logger.warning(
                "Polling source failed",
                extra={"source_url": self.fetcher.source_url, "reason": str(exc)},
            )
            return None
        if snapshot is None:
            return None

        timestamp = utc_timestamp()
        self.store.replace(snapshot, timestamp)
        logger.info("Snapshot updated: %s", snapshot.to_payload())

        if self.registry.size() == 0:
            return None
        payload = {**snapshot.to_payload(), "timestamp": timestamp}
        pending = self.broadcaster.submit(payload, self.registry.current_list())
        pending.add_done_callback(_log_broadcast)
        return pending

    def _run(self) -> None:
        next_run = time.monotonic() + self.interval
        while not self._stop.wait(max(0.0, next_run - time.monotonic())):
            try:
                self.tick()
            except Exception:  # noqa: BLE001 - the loop must outlive a bad cycle
                logger.exception("Unexpected error during poll cycle")
            next_run += self.interval
            now = time.monotonic()
            if next_run < now:
                # Overran one or more periods; resume on the next boundary.
                next_run = now + self.interval


def _log_broadcast(pending: Future[BroadcastResult]) -> None:
    if pending.cancelled() or pending.exception() is not None:
        return
    result = pending.result()
    logger.info(
        "Broadcast complete",
        extra={"sent": result.sent, "failed": result.failed, "total": result.total},
    )
