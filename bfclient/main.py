from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Sequence

from bfclient.config.loader import load_app_config
from bfclient.config.models import AppConfig
from bfclient.client import BetfairClient
from bfclient.core.errors import LogoutError, TransportError
from bfclient.core.types import MarketId
from bfclient.streaming.cache import MarketCache
from bfclient.streaming.stream import build_stream_filter
from bfclient.telemetry import configure_logging


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Log in to Betfair and stream market changes.")
    parser.add_argument("--config-dir", type=Path, default=Path("config"))
    return parser.parse_args(argv)


def _market_logger(logger: logging.Logger):
    def _on_change(market_id: MarketId, market: MarketCache) -> None:
        logger.info(
            "Market update",
            extra={
                "market_id": market_id,
                "status": market.status,
                "in_play": market.in_play,
                "total_matched": round(market.total_matched, 2),
                "runners": len(market.runners),
            },
        )

    return _on_change


def _shutdown(client: BetfairClient, logger: logging.Logger) -> None:
    """Close the stream and log out; a failed logout is reported, not raised."""

    client.streams.close()
    try:
        client.logout()
    except (LogoutError, TransportError) as exc:
        logger.warning("Logout failed during shutdown", extra={"error": str(exc)})


def run(config: AppConfig, stop_event: threading.Event, logger: logging.Logger) -> None:
    """Log in, stream the configured markets and keep the session alive until stopped."""

    creds = config.credentials
    keep_alive_sec = config.client.keep_alive_interval_min * 60
    with BetfairClient(config.client, config.stream, callback=_market_logger(logger)) as client:
        client.login(creds.app_key, creds.username, creds.password)
        try:
            stream = client.create_stream()
            stream.subscribe(
                build_stream_filter(
                    market_ids=config.stream.market_ids,
                    event_type_ids=config.stream.event_type_ids,
                )
            )
            stream.start()
            while not stop_event.wait(keep_alive_sec):
                if stream.closed:
                    logger.error("Stream stopped, shutting down", extra={"error": str(stream.error)})
                    break
                client.keep_alive()
        finally:
            _shutdown(client, logger)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    config = load_app_config(
        client_path=args.config_dir / "client.yml",
        secrets_path=args.config_dir / "secrets.yaml",
    )
    logger = configure_logging(log_dir=Path(config.telemetry.log_dir), level=config.telemetry.log_level)

    stop_event = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Received signal %s, stopping", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)
    run(config, stop_event, logger)


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - top-level safety
        print(f"Fatal error: {exc}", file=sys.stderr)
        raise
