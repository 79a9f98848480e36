from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from services.relay import RelayService, build_default_relay


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_relay() -> RelayService:
    return build_default_relay()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    relay: RelayService = Depends(get_relay),
) -> HTMLResponse:
    snapshot, timestamp = relay.latest()
    report = relay.health()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "snapshot": snapshot.to_payload(),
            "timestamp": timestamp,
            "subscribers": relay.registry.current_list(),
            "uptime": report.uptime,
        },
    )
