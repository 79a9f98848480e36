from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import ROUTES, router
from app.web import router as web_router
from logging_config import configure_logging
from services.relay import build_default_relay
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    relay = build_default_relay()
    _log_configuration()
    relay.start()
    try:
        yield
    finally:
        relay.shutdown()
        build_default_relay.cache_clear()


def _log_configuration() -> None:
    settings = get_settings()
    logger.info(
        "Relay configured: source=%s poll_interval=%ss timeout=%ss routes=%s",
        settings.source_url,
        settings.poll_interval,
        settings.request_timeout,
        ", ".join(ROUTES),
    )
    if settings.uses_default_api_key:
        logger.warning("API key is the built-in default; set API_KEY before exposing the relay.")


def _error_body(message: str) -> dict[str, str]:
    # ``error`` is the key ESP32 firmware and the dashboard read.
    return {"detail": message, "error": message}


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _invalid_request(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Malformed request body"),
    )


async def _unhandled_error(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="IoT Data Relay",
        description="Polls one sensor source and pushes each snapshot to registered ESP32 receivers.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(router)
    app.include_router(web_router)
    return app


def run() -> None:
    """Serve the relay with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)


app = create_app()
