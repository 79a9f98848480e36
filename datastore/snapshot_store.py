from __future__ import annotations

from threading import Lock
from typing import Optional, Tuple

from models.snapshot import Snapshot


class SnapshotStore:
    """Holds the latest snapshot together with the instant it was fetched."""

    def __init__(self) -> None:
        self._current: Tuple[Snapshot, Optional[str]] = (Snapshot(), None)
        self._lock = Lock()

    def replace(self, snapshot: Snapshot, timestamp: str) -> None:
        with self._lock:
            self._current = (snapshot, timestamp)

    def read(self) -> Tuple[Snapshot, Optional[str]]:
        with self._lock:
            return self._current

    @property
    def last_updated(self) -> Optional[str]:
        return self.read()[1]
