from __future__ import annotations

import hmac
import logging
from threading import Lock
from typing import Any, List, Set

from services.errors import AuthError, ValidationError

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Set of subscriber endpoint URLs, kept in registration order.

    Endpoints are compared by exact string equality and are never removed;
    an unreachable subscriber stays registered for the life of the process.
    """

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key
        self._endpoints: List[str] = []
        self._known: Set[str] = set()
        self._lock = Lock()

    def authorize(self, credential: Any) -> None:
        if not isinstance(credential, str) or not hmac.compare_digest(
            credential.encode("utf-8"), self._api_key.encode("utf-8")
        ):
            raise AuthError("Unauthorized: Invalid API key")

    def register(self, credential: Any, endpoint: Any) -> int:
        self.authorize(credential)
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise ValidationError("Missing espUrl in request body")

        with self._lock:
            added = endpoint not in self._known
            if added:
                self._known.add(endpoint)
                self._endpoints.append(endpoint)
            count = len(self._endpoints)

        if added:
            logger.info(
                "Subscriber registered",
                extra={"endpoint": endpoint, "registered": count},
            )
        return count

    def current_list(self) -> List[str]:
        """Return a copy that later registrations never alter."""
        with self._lock:
            return list(self._endpoints)

    def size(self) -> int:
        with self._lock:
            return len(self._endpoints)
