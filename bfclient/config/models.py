"""Typed configuration models for the exchange client.

The config subsystem relies on pydantic to validate YAML files and to
provide strongly-typed objects to the rest of the runtime.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class BetfairCredentials(BaseModel):
    """Application key and interactive login for the identity endpoint.

    Mirrors secrets.example.yml; the real file is never committed.
    """

    app_key: str = Field(..., min_length=5)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)


class ClientConfig(BaseModel):
    """Session-level settings used by :class:`bfclient.client.BetfairClient`."""

    locale: str = Field("en")
    base_currency: str = Field("GBP", min_length=3, max_length=3)
    timeout_sec: float = Field(10.0, gt=0)
    keep_alive_interval_min: PositiveInt = 60

    @field_validator("base_currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


class StreamConfig(BaseModel):
    """Exchange Stream subscription tuning.

    ``conflate_ms`` of zero asks the exchange for unconflated updates;
    ``heartbeat_ms`` is bounded by the exchange to 500..5000.
    """

    currency_code: str = Field("GBP", min_length=3, max_length=3)
    conflate_ms: int = Field(0, ge=0)
    heartbeat_ms: int = Field(5000, ge=500, le=5000)
    segmentation_enabled: bool = False
    market_ids: List[str] = Field(default_factory=list)
    event_type_ids: List[str] = Field(default_factory=list)

    @field_validator("currency_code")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()


class TelemetryConfig(BaseModel):
    """Logging switches."""

    log_level: str = Field("INFO")
    log_dir: str = Field("data/logs")


class AppConfig(BaseModel):
    """Runtime config composed of client, stream, telemetry and secrets."""

    client: ClientConfig = Field(default_factory=ClientConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    credentials: BetfairCredentials
