"""YAML loaders for the config subsystem.

Each helper consumes one YAML file, validates it via models.py and returns
typed objects to the caller.
"""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Tuple

import yaml

from bfclient.core.errors import ConfigurationError

from .models import AppConfig, BetfairCredentials, ClientConfig, StreamConfig, TelemetryConfig

_DEFAULT_CONFIG_DIR = Path("config")


def _read_yaml(path: Path) -> Mapping:
    """Read a YAML file and return a mapping (empty dict if file is blank)."""

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"YAML root must be a mapping in {path}")
    return data


def load_client_config(
    path: Path | str = _DEFAULT_CONFIG_DIR / "client.yml",
) -> Tuple[ClientConfig, StreamConfig, TelemetryConfig]:
    """Load client.yml with its ``client``, ``stream`` and ``telemetry`` sections.

    Every section is optional and falls back to model defaults, so an empty
    file yields a usable configuration.
    """

    data = _read_yaml(Path(path))
    for key in ("client", "stream", "telemetry"):
        section = data.get(key)
        if section is not None and not isinstance(section, Mapping):
            raise TypeError(f"`{key}` must be a mapping")
    client = ClientConfig.model_validate(data.get("client") or {})
    stream = StreamConfig.model_validate(data.get("stream") or {})
    telemetry = TelemetryConfig.model_validate(data.get("telemetry") or {})
    return client, stream, telemetry


def load_secrets_config(path: Path | str = _DEFAULT_CONFIG_DIR / "secrets.yaml") -> BetfairCredentials:
    """Load secrets.yaml (``betfair.app_key``, ``username``, ``password``).

    In production setups the file is gitignored; for tests it can point to a
    fixture.
    """

    data = _read_yaml(Path(path))
    section = data.get("betfair")
    if section is None:
        raise ValueError("secrets.yaml must contain a `betfair:` section")
    return BetfairCredentials.model_validate(section)


def load_app_config(
    *,
    client_path: Path | str = _DEFAULT_CONFIG_DIR / "client.yml",
    secrets_path: Path | str = _DEFAULT_CONFIG_DIR / "secrets.yaml",
) -> AppConfig:
    """Load and aggregate all config sections into a single AppConfig.

    This is the entry point used by bfclient.main. Any loader failure is
    re-raised as :class:`ConfigurationError` with the original chained.
    """

    try:
        client, stream, telemetry = load_client_config(client_path)
        credentials = load_secrets_config(secrets_path)
    except (OSError, ValueError, TypeError) as exc:
        raise ConfigurationError(str(exc)) from exc
    return AppConfig(client=client, stream=stream, telemetry=telemetry, credentials=credentials)
