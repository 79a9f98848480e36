from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple


DEFAULT_API_KEY = "your-secret-api-key-12345"
DEFAULT_SOURCE_URL = "https://test-fpbw.onrender.com/api/latest-data"

_API_KEY_ENV = "API_KEY"
_SOURCE_URL_ENV = "SOURCE_BACKEND_URL"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_REQUEST_TIMEOUT_ENV = "REQUEST_TIMEOUT_SECONDS"
_WORKER_COUNT_ENV = "BROADCAST_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"


@dataclass(frozen=True)
class Settings:
    api_key: str
    source_url: str
    poll_interval: float
    request_timeout: float
    broadcast_workers: int
    log_level: str
    host: str
    port: int
    cors_origins: Tuple[str, ...]

    @property
    def uses_default_api_key(self) -> bool:
        return self.api_key == DEFAULT_API_KEY


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_list_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        api_key=_read_str_env(_API_KEY_ENV, DEFAULT_API_KEY),
        source_url=_read_str_env(_SOURCE_URL_ENV, DEFAULT_SOURCE_URL),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 2.0),
        request_timeout=_read_positive_float(_REQUEST_TIMEOUT_ENV, 5.0),
        broadcast_workers=_read_positive_int(_WORKER_COUNT_ENV, 32),
        log_level=_read_log_level("INFO"),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3001),
        cors_origins=_read_list_env(_CORS_ORIGINS_ENV, ("*",)),
    )
