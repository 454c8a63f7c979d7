"""Configuration loading and validation package."""

from .loader import load_app_config, load_client_config, load_secrets_config
from .models import AppConfig, BetfairCredentials, ClientConfig, StreamConfig, TelemetryConfig

__all__ = [
    "AppConfig",
    "BetfairCredentials",
    "ClientConfig",
    "StreamConfig",
    "TelemetryConfig",
    "load_app_config",
    "load_client_config",
    "load_secrets_config",
]
