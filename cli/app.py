from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_broadcast, render_health, render_latest


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for operating the IoT data relay.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        "-k",
        help="Shared API key for register/send (defaults to API_KEY env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each relay response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, api_key=api_key, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the snapshot the relay most recently polled."""
    state = _get_state(ctx)
    render_latest(state.client.latest())


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Show relay uptime, subscriber count and last update time."""
    state = _get_state(ctx)
    render_health(state.client.health())


@app.command("register")
def register_command(
    ctx: typer.Context,
    esp_url: str = typer.Argument(..., help="URL the relay should push snapshots to."),
) -> None:
    """Register an ESP32 receiver URL."""
    state = _get_state(ctx)
    payload = state.client.register(esp_url)
    typer.secho(
        f"Registered {esp_url}. registeredESPs={payload.get('registeredESPs')}",
        fg=typer.colors.GREEN,
    )


@app.command("send")
def send_command(
    ctx: typer.Context,
    data: str = typer.Argument(..., help='JSON document to push, e.g. \'{"temperature": 36.6}\'.'),
) -> None:
    """Push a JSON document to every registered receiver."""
    state = _get_state(ctx)
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"DATA is not valid JSON: {exc.msg}") from exc
    typer.echo(f"Broadcasting to receivers via {state.config.base_url} ...")
    render_broadcast(state.client.send(parsed))
