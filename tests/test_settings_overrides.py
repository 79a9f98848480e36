from __future__ import annotations

import logging
from typing import Iterable

from logging_config import ContextualFormatter
from services.relay import build_default_relay
from settings import DEFAULT_API_KEY, get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_defaults_apply_when_environment_is_blank(monkeypatch) -> None:
    for name in ("API_KEY", "SOURCE_BACKEND_URL", "POLL_INTERVAL_SECONDS", "PORT"):
        monkeypatch.setenv(name, "  ")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.api_key == DEFAULT_API_KEY
        assert settings.uses_default_api_key is True
        assert settings.source_url == "https://test-fpbw.onrender.com/api/latest-data"
        assert settings.poll_interval == 2.0
        assert settings.request_timeout == 5.0
        assert settings.port == 3001
    finally:
        get_settings.cache_clear()


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "-1")
    monkeypatch.setenv("BROADCAST_WORKER_COUNT", "0")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.poll_interval == 2.0
        assert settings.request_timeout == 5.0
        assert settings.broadcast_workers == 32
    finally:
        get_settings.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("API_KEY", "s3cret")
    monkeypatch.setenv("SOURCE_BACKEND_URL", "http://source.test/api/latest-data")
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "3")
    monkeypatch.setenv("BROADCAST_WORKER_COUNT", "2")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_relay)
    _clear_caches(caches)

    relay = build_default_relay()

    try:
        settings = get_settings()
        assert settings.uses_default_api_key is False
        assert settings.log_level == "DEBUG"
        assert relay.fetcher.source_url == "http://source.test/api/latest-data"
        assert relay.fetcher.timeout == 3.0
        assert relay.broadcaster.timeout == 3.0
        assert relay.broadcaster.max_workers == 2
        assert relay.poll_loop.interval == 0.5
        assert relay.registry.register("s3cret", "http://esp-1.test/data") == 1
    finally:
        relay.shutdown()
        _clear_caches(caches)


def test_contextual_formatter_appends_known_extras() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")
    record = logging.LogRecord("relay", logging.INFO, __file__, 1, "Broadcast complete", None, None)
    record.sent = 2
    record.failed = 1
    record.unrelated = "ignored"

    assert formatter.format(record) == "Broadcast complete | sent=2 failed=1"
