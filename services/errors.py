"""Error taxonomy shared by the relay components."""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for relay failures."""


class AuthError(RelayError):
    """The supplied credential does not match the configured secret."""


class ValidationError(RelayError):
    """A required request field is missing or empty."""


class FetchError(RelayError):
    """The upstream source was unreachable or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PushError(RelayError):
    """Delivery to a single subscriber endpoint failed."""

    def __init__(self, endpoint: str, reason: str) -> None:
        super().__init__(f"Push to {endpoint} failed: {reason}")
        self.endpoint = endpoint
        self.reason = reason
