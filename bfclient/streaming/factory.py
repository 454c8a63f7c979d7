"""Builds the Exchange Stream for a session and a resolved target currency."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from bfclient.core.errors import StreamAlreadyActiveError
from bfclient.core.types import MarketChangeCallback, MarketId
from bfclient.currency.rates import CurrencyRate, resolve_target_currency
from bfclient.session.session import Session

from .cache import MarketCache
from .stream import ExchangeStream

LOGGER = logging.getLogger(__name__)

StreamBuilder = Callable[..., ExchangeStream]


class StreamFactory:
    """Owns at most one open :class:`ExchangeStream` per session.

    ``create`` refuses to build a second stream while the previous one is
    still open; close it first (or use the stream as a context manager).
    """

    def __init__(
        self,
        session: Session,
        *,
        conflate_ms: int = 0,
        heartbeat_ms: int = 5000,
        segmentation_enabled: bool = False,
        callback: Optional[MarketChangeCallback] = None,
        stream_builder: StreamBuilder = ExchangeStream,
    ) -> None:
        self._session = session
        self.conflate_ms = conflate_ms
        self.heartbeat_ms = heartbeat_ms
        self.segmentation_enabled = segmentation_enabled
        self.callback = callback
        self._builder = stream_builder
        self._active: Optional[ExchangeStream] = None

    @property
    def active(self) -> Optional[ExchangeStream]:
        if self._active is not None and self._active.closed:
            self._active = None
        return self._active

    def resolve(self, currency_code: str) -> CurrencyRate:
        snapshot = self._session.require_snapshot()
        return resolve_target_currency(snapshot.currency_rates, currency_code)

    def create(
        self,
        currency_code: str,
        *,
        conflate_ms: Optional[int] = None,
        heartbeat_ms: Optional[int] = None,
        callback: Optional[MarketChangeCallback] = None,
    ) -> ExchangeStream:
        """Resolve ``currency_code`` and construct the stream (not yet connected).

        Raises :class:`UnauthenticatedDispatchError` before a full login,
        :class:`CurrencyResolutionError` for an unknown code and
        :class:`StreamAlreadyActiveError` while another stream is open.
        """

        target = self.resolve(currency_code)
        if self.active is not None:
            raise StreamAlreadyActiveError("Close the active stream before creating a new one")
        stream = self._builder(
            self._session,
            self.segmentation_enabled,
            self.conflate_ms if conflate_ms is None else conflate_ms,
            self.heartbeat_ms if heartbeat_ms is None else heartbeat_ms,
            target,
            callback or self.callback,
        )
        self._active = stream
        LOGGER.info("Exchange stream created", extra={"currency": target.currency_code, "rate": target.rate})
        return stream

    def cache(self) -> Mapping[MarketId, MarketCache]:
        """Read-only cache of the active stream (empty when none is open)."""

        stream = self.active
        if stream is None:
            return MappingProxyType({})
        return stream.cache

    def close(self) -> None:
        stream = self._active
        self._active = None
        if stream is not None:
            stream.close()
