from __future__ import annotations

from typing import Any, Dict

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the relay's JSON API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def latest(self) -> Dict[str, Any]:
        return self._request("GET", "/api/latest-data")

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/api/health")

    def register(self, esp_url: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/register-esp",
            json={"apiKey": self._require_api_key(), "espUrl": esp_url},
        )

    def send(self, data: Any) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/send-data",
            json={"apiKey": self._require_api_key(), "data": data},
        )

    def _require_api_key(self) -> str:
        if not self._config.api_key:
            raise typer.BadParameter("An API key is required (use --api-key or set API_KEY).")
        return self._config.api_key

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Request to {self._config.base_url} failed: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
