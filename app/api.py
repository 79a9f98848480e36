"""HTTP route definitions for the relay."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    HealthResponse,
    LatestDataResponse,
    RegisterRequest,
    RegisterResponse,
    SendDataRequest,
    SendDataResponse,
    ServiceDescriptor,
    SnapshotData,
)
from services.errors import AuthError, ValidationError
from services.relay import RelayService, build_default_relay

router = APIRouter()

ROUTES = {
    "GET /api/latest-data": "Get latest sensor data",
    "POST /api/register-esp": "Register ESP32 receiver URL",
    "POST /api/send-data": "Send data to registered ESP32 devices",
    "GET /api/health": "Health check",
}


def get_relay() -> RelayService:
    return build_default_relay()


@router.get(
    "/",
    response_model=ServiceDescriptor,
    summary="Describe the relay and its routes.",
)
async def root() -> ServiceDescriptor:
    return ServiceDescriptor(
        message="IoT Data Relay Backend is running",
        endpoints=dict(ROUTES),
    )


@router.get(
    "/api/latest-data",
    response_model=LatestDataResponse,
    summary="Return the most recently polled snapshot.",
)
async def latest_data(relay: RelayService = Depends(get_relay)) -> LatestDataResponse:
    snapshot, timestamp = relay.latest()
    return LatestDataResponse(
        data=SnapshotData(**snapshot.to_payload()),
        timestamp=timestamp,
    )


@router.post(
    "/api/register-esp",
    response_model=RegisterResponse,
    summary="Register a subscriber endpoint for snapshot pushes.",
)
async def register_esp(
    body: RegisterRequest,
    relay: RelayService = Depends(get_relay),
) -> RegisterResponse:
    try:
        count = relay.register(body.api_key, body.esp_url)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return RegisterResponse(registeredESPs=count)


# Plain ``def`` so the blocking fan-out runs in the threadpool.
@router.post(
    "/api/send-data",
    response_model=SendDataResponse,
    summary="Push caller-supplied data to every registered subscriber.",
)
def send_data(
    body: SendDataRequest,
    relay: RelayService = Depends(get_relay),
) -> SendDataResponse:
    try:
        result = relay.send(body.api_key, body.data)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return SendDataResponse(sent=result.sent, failed=result.failed, totalESPs=result.total)


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(relay: RelayService = Depends(get_relay)) -> HealthResponse:
    report = relay.health()
    return HealthResponse(
        uptime=report.uptime,
        registeredESPs=report.registered,
        lastDataUpdate=report.last_update,
    )
