"""Exchange Stream API connection bound to a session and a target currency.

The Exchange Stream is a TLS socket carrying CRLF-terminated JSON messages.
After the server's ``connection`` message the client authenticates with the
session's current credentials, then sends ``marketSubscription`` requests.
Market changes (``mcm``) are folded into a per-market cache and reported to
the market-change callback.

Credentials are read from the :class:`Session` at connect time rather than
copied at construction, so a re-login is picked up by the next connect.
"""
from __future__ import annotations

import contextlib
import itertools
import json
import logging
import socket
import ssl
import threading
from types import MappingProxyType
from typing import IO, Any, Dict, List, Mapping, Optional, Sequence

from bfclient.core.errors import StreamError
from bfclient.core.types import MarketChangeCallback, MarketId
from bfclient.currency.rates import CurrencyRate
from bfclient.session.session import Session

from .cache import MarketCache

LOGGER = logging.getLogger(__name__)

STREAM_HOST = "stream-api.betfair.com"
STREAM_PORT = 443

# Heartbeat bounds accepted by the exchange.
MIN_HEARTBEAT_MS = 500
MAX_HEARTBEAT_MS = 5000

DEFAULT_MARKET_FIELDS: tuple[str, ...] = (
    "EX_ALL_OFFERS",
    "EX_TRADED",
    "EX_TRADED_VOL",
    "EX_LTP",
    "EX_MARKET_DEF",
)


def build_stream_filter(
    *,
    market_ids: Optional[Sequence[str]] = None,
    event_type_ids: Optional[Sequence[str]] = None,
    event_ids: Optional[Sequence[str]] = None,
    market_types: Optional[Sequence[str]] = None,
    country_codes: Optional[Sequence[str]] = None,
) -> Dict[str, List[str]]:
    """Return a stream ``marketFilter`` with only the populated keys."""

    fields = {
        "marketIds": market_ids,
        "eventTypeIds": event_type_ids,
        "eventIds": event_ids,
        "marketTypes": market_types,
        "countryCodes": country_codes,
    }
    return {key: list(values) for key, values in fields.items() if values}


class ExchangeStream:
    """Long-lived market subscription with a locally maintained cache.

    Parameters
    ----------
    session:
        Live session reference; credentials are read on every connect.
    segmentation_enabled:
        Lets the exchange split large images across several messages.
    conflate_ms / heartbeat_ms:
        Subscription tuning forwarded as ``conflateMs`` / ``heartbeatMs``;
        ``heartbeat_ms`` is clamped to the exchange's 500..5000 range.
    target_currency:
        Resolved rate used to convert GBP stream sizes.
    callback:
        Called as ``callback(market_id, market_cache)`` after every change.
    """

    def __init__(
        self,
        session: Session,
        segmentation_enabled: bool,
        conflate_ms: int,
        heartbeat_ms: int,
        target_currency: CurrencyRate,
        callback: Optional[MarketChangeCallback] = None,
        *,
        host: str = STREAM_HOST,
        port: int = STREAM_PORT,
        timeout: Optional[float] = None,
    ) -> None:
        self.session = session
        self.segmentation_enabled = segmentation_enabled
        self.conflate_ms = conflate_ms
        self.heartbeat_ms = min(max(heartbeat_ms, MIN_HEARTBEAT_MS), MAX_HEARTBEAT_MS)
        self.target_currency = target_currency
        self.callback = callback
        self._host = host
        self._port = port
        # Heartbeats arrive every heartbeat_ms, so silence beyond a few of them means a dead socket.
        self._timeout = timeout if timeout is not None else self.heartbeat_ms * 3 / 1000.0
        self._ids = itertools.count(1)
        self._cache: Dict[MarketId, MarketCache] = {}
        self._subscriptions: List[Dict[str, Any]] = []
        self._socket: Optional[socket.socket] = None
        self._conn: Optional[IO[bytes]] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._send_lock = threading.Lock()
        self.connection_id: Optional[str] = None
        self.clk: Optional[str] = None
        self.initial_clk: Optional[str] = None
        self.error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------
    @property
    def cache(self) -> Mapping[MarketId, MarketCache]:
        """Read-only view of the tracked markets."""

        return MappingProxyType(self._cache)

    def get_cache(self) -> Mapping[MarketId, MarketCache]:
        return self.cache

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self) -> None:
        """Open the socket, authenticate and replay stored subscriptions.

        Any previous connection is released first, so calling this again after
        a re-login reconnects with the new credentials. The connection is only
        published once the exchange accepts the authentication; on failure it
        is closed and the stream is left disconnected.
        """

        if self.closed:
            raise StreamError("Stream has been closed")
        credentials = self.session.require_snapshot().credentials
        self._release(self._conn)
        conn = self._open_connection()
        try:
            self.process_message(self._read_message(conn))
            self._send(
                {
                    "op": "authentication",
                    "id": next(self._ids),
                    "appKey": credentials.app_key,
                    "session": credentials.session_token,
                },
                conn,
            )
            self.process_message(self._read_message(conn))
            for subscription in self._subscriptions:
                self._send(subscription, conn)
        except BaseException:
            self._release(conn)
            raise
        self._conn = conn
        LOGGER.info(
            "Exchange stream connected",
            extra={"connection_id": self.connection_id, "currency": self.target_currency.currency_code},
        )

    def subscribe(
        self,
        market_filter: Mapping[str, Any],
        fields: Sequence[str] = DEFAULT_MARKET_FIELDS,
    ) -> Dict[str, Any]:
        """Register a market subscription, sending it now if connected.

        Later subscriptions replace earlier ones on the exchange side, so only
        the latest one is replayed on reconnect.
        """

        message: Dict[str, Any] = {
            "op": "marketSubscription",
            "id": next(self._ids),
            "marketFilter": dict(market_filter),
            "marketDataFilter": {"fields": list(fields)},
            "conflateMs": self.conflate_ms,
            "heartbeatMs": self.heartbeat_ms,
            "segmentationEnabled": self.segmentation_enabled,
        }
        self._subscriptions = [message]
        if self._conn is not None:
            self._send(message)
        return message

    def start(self) -> threading.Thread:
        """Run the reader loop on a daemon thread."""

        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self._run_safely, name="exchange-stream", daemon=True)
        self._thread.start()
        return self._thread

    def run(self) -> None:
        """Read and process messages until :meth:`close` is called."""

        if self._conn is None:
            self.connect()
        while not self._stop.is_set():
            conn = self._conn
            try:
                message = self._read_message(conn)
            except (StreamError, OSError, ValueError):
                if self._stop.is_set():
                    break
                if self._conn is not None and self._conn is not conn:
                    # connect() swapped in a fresh connection under us.
                    continue
                raise
            self.process_message(message)

    def close(self) -> None:
        """Stop the reader loop and release the socket. Safe to call twice."""

        if self._stop.is_set():
            return
        self._stop.set()
        self._release(self._conn)
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._timeout)
        LOGGER.info("Exchange stream closed", extra={"connection_id": self.connection_id})

    def __enter__(self) -> "ExchangeStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Protocol handling
    # ------------------------------------------------------------------
    def process_message(self, message: Mapping[str, Any]) -> None:
        op = message.get("op")
        if op == "connection":
            self.connection_id = message.get("connectionId")
        elif op == "status":
            self._on_status(message)
        elif op == "mcm":
            self._on_market_change(message)
        else:
            LOGGER.debug("Ignoring stream message", extra={"op": op})

    def _on_status(self, message: Mapping[str, Any]) -> None:
        if message.get("statusCode") == "FAILURE":
            raise StreamError(f"Stream error {message.get('errorCode')}: {message.get('errorMessage')}")
        if message.get("connectionClosed"):
            raise StreamError("Exchange closed the stream connection")

    def _on_market_change(self, message: Mapping[str, Any]) -> None:
        if message.get("initialClk"):
            self.initial_clk = message["initialClk"]
        if message.get("clk"):
            self.clk = message["clk"]
        if message.get("ct") == "HEARTBEAT":
            return
        publish_time = message.get("pt")
        for change in message.get("mc", ()):
            market_id = MarketId(change["id"])
            market = self._cache.get(market_id)
            if market is None:
                market = MarketCache(market_id=market_id)
                self._cache[market_id] = market
            market.apply(change, self.target_currency, publish_time)
            if self.callback is not None:
                self.callback(market_id, market)

    # ------------------------------------------------------------------
    # Socket helpers
    # ------------------------------------------------------------------
    def _open_connection(self) -> IO[bytes]:  # pragma: no cover - network usage
        raw = socket.create_connection((self._host, self._port), timeout=self._timeout)
        context = ssl.create_default_context()
        self._socket = context.wrap_socket(raw, server_hostname=self._host)
        return self._socket.makefile("rwb")

    def _release(self, conn: Optional[IO[bytes]]) -> None:
        """Close ``conn`` and the socket under it; the stream stays reusable."""

        sock = self._socket
        self._conn = None
        self._socket = None
        for handle in (conn, sock):
            if handle is not None:
                with contextlib.suppress(OSError):
                    handle.close()

    def _send(self, message: Mapping[str, Any], conn: Optional[IO[bytes]] = None) -> None:
        conn = conn if conn is not None else self._conn
        if conn is None:
            raise StreamError("Stream is not connected")
        payload = json.dumps(message, separators=(",", ":")).encode("utf-8") + b"\r\n"
        with self._send_lock:
            conn.write(payload)
            conn.flush()

    def _read_message(self, conn: Optional[IO[bytes]] = None) -> Mapping[str, Any]:
        conn = conn if conn is not None else self._conn
        if conn is None:
            raise StreamError("Stream is not connected")
        line = conn.readline()
        if not line:
            raise StreamError("Stream connection closed by exchange")
        return json.loads(line)

    def _run_safely(self) -> None:
        try:
            self.run()
        except Exception as exc:  # noqa: BLE001 - surfaced through ``error``
            self.error = exc
            LOGGER.exception("Exchange stream stopped")
            self.close()
