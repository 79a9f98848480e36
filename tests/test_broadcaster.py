"""Unit tests for concurrent subscriber fan-out."""

from __future__ import annotations

import json
import threading
import time
from typing import Dict, Iterator, List

import httpx
import pytest

from services.broadcaster import Broadcaster, BroadcastResult

GOOD = ["http://esp-1.test/data", "http://esp-2.test/data", "http://esp-3.test/data"]
BAD = ["http://esp-down.test/data", "http://esp-error.test/data"]


class RecordingHandler:
    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.received: Dict[str, List[dict]] = {}
        self.headers: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if self.delay:
            time.sleep(self.delay)
        if "esp-down" in url:
            raise httpx.ConnectError("connection refused", request=request)
        if "esp-slow" in url:
            raise httpx.ReadTimeout("timed out", request=request)
        if "esp-error" in url:
            return httpx.Response(500)
        with self._lock:
            self.received.setdefault(url, []).append(json.loads(request.content))
            self.headers[url] = request.headers.get("content-type", "")
        return httpx.Response(200, json={"ok": True})


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def broadcaster(handler: RecordingHandler) -> Iterator[Broadcaster]:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    instance = Broadcaster(timeout=5.0, workers=4, client=client)
    yield instance
    instance.shutdown()


def test_fan_out_delivers_payload_to_every_endpoint(broadcaster, handler) -> None:
    payload = {"temperature": 36.6, "timestamp": "2024-01-01T00:00:00.000Z"}

    result = broadcaster.fan_out(payload, GOOD)

    assert result == BroadcastResult(sent=3, failed=0, total=3)
    assert sorted(handler.received) == sorted(GOOD)
    for url in GOOD:
        assert handler.received[url] == [payload]
        assert handler.headers[url] == "application/json"


def test_failures_are_counted_without_stopping_others(broadcaster, handler) -> None:
    endpoints = [BAD[0], GOOD[0], BAD[1], GOOD[1], GOOD[2]]

    for _ in range(3):
        result = broadcaster.fan_out({"ir": True}, endpoints)
        assert result == BroadcastResult(sent=3, failed=2, total=5)

    assert all(len(handler.received[url]) == 3 for url in GOOD)


def test_timeout_on_one_endpoint_counts_as_failure(broadcaster) -> None:
    result = broadcaster.fan_out({"rfid": True}, ["http://esp-slow.test/data", GOOD[0]])

    assert result == BroadcastResult(sent=1, failed=1, total=2)


def test_empty_endpoint_list_resolves_immediately(broadcaster) -> None:
    pending = broadcaster.submit({"ir": False}, [])

    assert pending.done()
    assert pending.result() == BroadcastResult(sent=0, failed=0, total=0)


def test_submit_does_not_wait_for_delivery() -> None:
    slow = RecordingHandler(delay=0.3)
    client = httpx.Client(transport=httpx.MockTransport(slow))
    broadcaster = Broadcaster(timeout=5.0, workers=4, client=client)
    try:
        started = time.perf_counter()
        pending = broadcaster.submit({"ir": True}, GOOD)
        assert time.perf_counter() - started < 0.2
        assert pending.result(timeout=5) == BroadcastResult(sent=3, failed=0, total=3)
    finally:
        broadcaster.shutdown()


def test_deliveries_run_concurrently() -> None:
    slow = RecordingHandler(delay=0.3)
    client = httpx.Client(transport=httpx.MockTransport(slow))
    broadcaster = Broadcaster(timeout=5.0, workers=4, client=client)
    endpoints = [f"http://esp-{i}.test/data" for i in range(4)]
    try:
        started = time.perf_counter()
        result = broadcaster.fan_out({"distress": True}, endpoints)
        elapsed = time.perf_counter() - started
    finally:
        broadcaster.shutdown()

    assert result.sent == 4
    assert elapsed < 1.0


def test_hung_backlog_does_not_delay_later_passes() -> None:
    timeout = 0.5

    def handler(request: httpx.Request) -> httpx.Response:
        if "esp-hung" in str(request.url):
            time.sleep(timeout)
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    broadcaster = Broadcaster(timeout=timeout, workers=8, client=client)
    hung = [f"http://esp-hung-{i}.test/data" for i in range(8)]
    try:
        backlog = [broadcaster.submit({"ir": True}, hung) for _ in range(4)]

        started = time.perf_counter()
        result = broadcaster.fan_out({"ir": True}, ["http://esp-healthy.test/data"])
        elapsed = time.perf_counter() - started

        assert result == BroadcastResult(sent=1, failed=0, total=1)
        assert elapsed < timeout
        for pending in backlog:
            assert pending.result(timeout=5) == BroadcastResult(sent=0, failed=8, total=8)
    finally:
        broadcaster.shutdown()


def test_finished_passes_are_released_and_shutdown_refuses_new_work(broadcaster) -> None:
    broadcaster.fan_out({"ir": True}, GOOD)

    deadline = time.monotonic() + 2.0
    while broadcaster.active_passes and time.monotonic() < deadline:
        time.sleep(0.01)
    assert broadcaster.active_passes == 0

    broadcaster.shutdown()
    assert broadcaster.closed is True
    with pytest.raises(RuntimeError):
        broadcaster.submit({"ir": True}, GOOD)
