from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_latest(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Snapshot")
    echo_key_values([("timestamp", payload.get("timestamp") or "never")])
    data = payload.get("data") or {}
    echo_key_values(
        (field, data.get(field))
        for field in ("temperature", "pulseRate", "distress", "rfid", "ir")
    )


def render_health(payload: Dict[str, Any]) -> None:
    echo_heading("Relay Health")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("uptime", payload.get("uptime")),
            ("registeredESPs", payload.get("registeredESPs")),
            ("lastDataUpdate", payload.get("lastDataUpdate") or "never"),
        ]
    )


def render_broadcast(payload: Dict[str, Any]) -> None:
    echo_heading("Broadcast Result")
    echo_key_values(
        [
            ("sent", payload.get("sent")),
            ("failed", payload.get("failed")),
            ("totalESPs", payload.get("totalESPs")),
        ]
    )
