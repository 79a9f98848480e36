"""Concurrent best-effort delivery of payloads to subscriber endpoints."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from threading import Lock
from typing import Any, Optional, Sequence, Set

import httpx

from services.errors import PushError

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class BroadcastResult:
    sent: int
    failed: int
    total: int


class _Tally:
    """Collects per-endpoint outcomes and resolves ``outcome`` after the last one."""

    def __init__(self, total: int, outcome: Future[BroadcastResult]) -> None:
        self._total = total
        self._outcome = outcome
        self._sent = 0
        self._failed = 0
        self._lock = Lock()

    def record(self, attempt: Future[bool]) -> None:
        delivered = not attempt.cancelled() and attempt.exception() is None and attempt.result()
        with self._lock:
            if delivered:
                self._sent += 1
            else:
                self._failed += 1
            finished = self._sent + self._failed == self._total
            result = BroadcastResult(sent=self._sent, failed=self._failed, total=self._total)
        if finished:
            self._outcome.set_result(result)


class Broadcaster:
    """Pushes one payload to every endpoint, each attempt independent of the rest.

    Every pass gets its own short-lived thread pool, so pushes stuck on a hung
    subscriber never queue ahead of a later pass.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        workers: int = 32,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.timeout = timeout
        self.max_workers = workers
        self._client = client or httpx.Client(timeout=timeout)
        self._passes: Set[ThreadPoolExecutor] = set()
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_passes(self) -> int:
        with self._lock:
            return len(self._passes)

    def submit(self, payload: Any, endpoints: Sequence[str]) -> Future[BroadcastResult]:
        """Schedule delivery to ``endpoints`` and return without waiting.

        The returned future resolves once every attempt has succeeded or failed.
        """
        outcome: Future[BroadcastResult] = Future()
        targets = list(endpoints)
        if not targets:
            outcome.set_result(BroadcastResult(sent=0, failed=0, total=0))
            return outcome

        with self._lock:
            if self._closed:
                raise RuntimeError("Broadcaster has been shut down.")
            executor = ThreadPoolExecutor(
                max_workers=min(len(targets), self.max_workers),
                thread_name_prefix="broadcast",
            )
            self._passes.add(executor)
            tally = _Tally(len(targets), outcome)
            for endpoint in targets:
                attempt = executor.submit(self._deliver, endpoint, payload)
                attempt.add_done_callback(tally.record)
            # Workers exit on their own once this pass has drained.
            executor.shutdown(wait=False)
        outcome.add_done_callback(lambda _done: self._forget(executor))
        return outcome

    def fan_out(self, payload: Any, endpoints: Sequence[str]) -> BroadcastResult:
        return self.submit(payload, endpoints).result()

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            passes, self._passes = self._passes, set()
        for executor in passes:
            executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()

    def _forget(self, executor: ThreadPoolExecutor) -> None:
        with self._lock:
            self._passes.discard(executor)

    def _deliver(self, endpoint: str, payload: Any) -> bool:
        started = time.perf_counter()
        try:
            self._push(endpoint, payload)
        except PushError as exc:
            logger.warning(
                "Push to subscriber failed",
                extra={"endpoint": endpoint, "reason": exc.reason},
            )
            return False
        logger.debug(
            "Push to subscriber delivered",
            extra={
                "endpoint": endpoint,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return True

    def _push(self, endpoint: str, payload: Any) -> None:
        try:
            response = self._client.post(
                endpoint, json=payload, headers=_HEADERS, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PushError(endpoint, f"status {exc.response.status_code}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise PushError(endpoint, repr(exc)) from exc
