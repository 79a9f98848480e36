"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SnapshotData(BaseModel):
    """The canonical five-field sensor reading."""

    temperature: Union[int, float] = 0
    pulseRate: Union[int, float] = 0
    distress: bool = False
    rfid: bool = False
    ir: bool = False


class ServiceDescriptor(BaseModel):
    status: str = "ok"
    message: str
    endpoints: Dict[str, str]


class LatestDataResponse(BaseModel):
    status: str = "success"
    message: str = "Latest data from source backend"
    data: SnapshotData
    timestamp: Optional[str] = Field(
        default=None, description="ISO-8601 instant of the last successful poll."
    )


class RegisterRequest(BaseModel):
    """Subscriber registration body. Fields are loosely typed so the handler can
    answer a bad credential of any type with 401 and a missing URL with 400."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: Any = Field(default=None, alias="apiKey")
    esp_url: Any = Field(default=None, alias="espUrl")


class RegisterResponse(BaseModel):
    status: str = "success"
    message: str = "ESP32 registered successfully"
    registeredESPs: int = Field(..., ge=0)


class SendDataRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: Any = Field(default=None, alias="apiKey")
    data: Any = None


class SendDataResponse(BaseModel):
    status: str = "success"
    message: str = "Broadcast complete"
    sent: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    totalESPs: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    status: str = "ok"
    message: str = "Relay backend is running"
    uptime: float = Field(..., description="Seconds since the relay started.")
    registeredESPs: int = Field(..., ge=0)
    lastDataUpdate: Optional[str] = None
