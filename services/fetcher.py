"""Single-shot retrieval of the upstream sensor snapshot."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from models.snapshot import Snapshot
from services.errors import FetchError

logger = logging.getLogger(__name__)


class SourceFetcher:
    """Pulls one snapshot from the fixed upstream source per call."""

    def __init__(
        self,
        source_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.source_url = source_url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def fetch(self) -> Optional[Snapshot]:
        """Return the normalized snapshot, or ``None`` when the source has no data yet.

        Raises ``FetchError`` on transport failures, non-2xx responses and
        bodies that are not JSON.
        """
        try:
            response = self._client.get(
                self.source_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Source responded with status {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"Source request failed: {exc!r}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise FetchError("Source returned a body that is not valid JSON") from exc

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            logger.debug("Source has no data yet", extra={"source_url": self.source_url})
            return None
        return Snapshot.from_source(data)

    def close(self) -> None:
        self._client.close()
