"""High level Betfair Exchange client.

:class:`BetfairClient` wires the session, the JSON-RPC dispatcher and the
stream factory around one ``httpx.Client``:

* ``login`` / ``logout`` / ``keep_alive`` drive :class:`bfclient.session.Session`;
* betting operations map onto ``SportsAPING/v1.0/<op>``;
* ``list_currency_rates`` maps onto ``AccountAPING/v1.0/listCurrencyRates``;
* ``create_stream`` binds an :class:`ExchangeStream` to a resolved currency.

Operations return the raw :class:`RpcResponse`; exchange-level errors arrive
in ``response.error`` and are left to the caller.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from bfclient.config.models import ClientConfig, StreamConfig
from bfclient.core.enums import (
    BetStatus,
    GroupBy,
    MarketProjection,
    MarketSort,
    MatchProjection,
    OrderBy,
    OrderProjection,
    Side,
    SortDir,
    TimeGranularity,
)
from bfclient.core.types import MarketChangeCallback, MarketId
from bfclient.rpc.dispatcher import PacketIdGenerator, RpcDispatcher
from bfclient.rpc.params import (
    CancelInstruction,
    MarketFilter,
    PlaceInstruction,
    PriceProjection,
    ReplaceInstruction,
    TimeRange,
    UpdateInstruction,
    dump_params,
)
from bfclient.rpc.transport import RpcResponse
from bfclient.session.identity import IdentityClient
from bfclient.session.session import Session, SessionSnapshot
from bfclient.streaming.cache import MarketCache
from bfclient.streaming.factory import StreamBuilder, StreamFactory
from bfclient.streaming.stream import ExchangeStream


def _compact(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: dump_params(value) for key, value in params.items() if value is not None}


class BetfairClient:
    """Session-aware client for the betting, account and stream APIs.

    Parameters
    ----------
    config:
        Locale, base currency and HTTP timeout.
    stream_config:
        Conflation/heartbeat tuning for streams built by :meth:`create_stream`.
    http_client:
        Optional pre-configured :class:`httpx.Client` (e.g. for tests).
    callback:
        Default market-change callback handed to new streams.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        stream_config: Optional[StreamConfig] = None,
        http_client: httpx.Client | None = None,
        *,
        callback: Optional[MarketChangeCallback] = None,
        id_generator: Optional[PacketIdGenerator] = None,
        stream_builder: StreamBuilder = ExchangeStream,
    ) -> None:
        self.config = config or ClientConfig()
        self.stream_config = stream_config or StreamConfig()
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=self.config.timeout_sec)
        self.dispatcher = RpcDispatcher(self._http, id_generator)
        self.session = Session(
            IdentityClient(self._http),
            self.dispatcher,
            locale=self.config.locale,
            base_currency=self.config.base_currency,
        )
        self.streams = StreamFactory(
            self.session,
            conflate_ms=self.stream_config.conflate_ms,
            heartbeat_ms=self.stream_config.heartbeat_ms,
            segmentation_enabled=self.stream_config.segmentation_enabled,
            callback=callback,
            stream_builder=stream_builder,
        )

    @property
    def locale(self) -> str:
        return self.session.locale

    def close(self) -> None:
        """Close the active stream and the HTTP client if this object built it."""

        self.streams.close()
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "BetfairClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def login(self, app_key: str, username: str, password: str) -> SessionSnapshot:
        """Interactive login followed by the base-currency rate fetch.

        Certificate login is the recommended route for unattended bots; this
        method covers the interactive flow only.
        """

        return self.session.login(app_key, username, password)

    def logout(self) -> Optional[Mapping[str, Any]]:
        return self.session.logout()

    def keep_alive(self) -> Mapping[str, Any]:
        return self.session.keep_alive()

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    def create_stream(
        self,
        currency_code: Optional[str] = None,
        *,
        callback: Optional[MarketChangeCallback] = None,
    ) -> ExchangeStream:
        """Build an Exchange Stream whose sizes are quoted in ``currency_code``."""

        return self.streams.create(currency_code or self.stream_config.currency_code, callback=callback)

    def get_stream_cache(self) -> Mapping[MarketId, MarketCache]:
        """Markets tracked by the active stream, keyed by market id."""

        return self.streams.cache()

    # ------------------------------------------------------------------
    # Dispatch helpers
    # ------------------------------------------------------------------
    def _betting(self, method: str, params: Mapping[str, Any]) -> RpcResponse:
        return self.dispatcher.betting(method, _compact(params), self.session.credentials)

    def _filter_query(self, method: str, market_filter: MarketFilter) -> RpcResponse:
        return self._betting(method, {"filter": market_filter, "locale": self.locale})

    # ------------------------------------------------------------------
    # Navigation / market data
    # ------------------------------------------------------------------
    def list_market_catalogue(
        self,
        market_filter: MarketFilter,
        market_projection: Sequence[MarketProjection] = (),
        sort: Optional[MarketSort] = None,
        max_results: int = 100,
    ) -> RpcResponse:
        return self._betting(
            "listMarketCatalogue",
            {
                "filter": market_filter,
                "marketProjection": list(market_projection),
                "sort": sort,
                "maxResults": max_results,
                "locale": self.locale,
            },
        )

    def list_market_book(
        self,
        market_ids: Sequence[str],
        price_projection: Optional[PriceProjection] = None,
        order_projection: Optional[OrderProjection] = None,
        match_projection: Optional[MatchProjection] = None,
        currency_code: Optional[str] = None,
    ) -> RpcResponse:
        return self._betting(
            "listMarketBook",
            {
                "marketIds": list(market_ids),
                "priceProjection": price_projection,
                "orderProjection": order_projection,
                "matchProjection": match_projection,
                "currencyCode": currency_code,
                "locale": self.locale,
            },
        )

    def list_event_types(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listEventTypes", market_filter)

    def list_competitions(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listCompetitions", market_filter)

    def list_time_ranges(
        self,
        market_filter: MarketFilter,
        granularity: TimeGranularity = TimeGranularity.DAYS,
    ) -> RpcResponse:
        # listTimeRanges is the one filter query without a locale field.
        return self._betting("listTimeRanges", {"filter": market_filter, "granularity": granularity})

    def list_events(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listEvents", market_filter)

    def list_market_types(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listMarketTypes", market_filter)

    def list_countries(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listCountries", market_filter)

    def list_venues(self, market_filter: MarketFilter) -> RpcResponse:
        return self._filter_query("listVenues", market_filter)

    def list_market_profit_and_loss(
        self,
        market_ids: Sequence[str],
        include_settled_bets: bool = False,
        include_bsp_bets: bool = False,
        net_of_commission: bool = False,
    ) -> RpcResponse:
        return self._betting(
            "listMarketProfitAndLoss",
            {
                "marketIds": list(market_ids),
                "includeSettledBets": include_settled_bets,
                "includeBspBets": include_bsp_bets,
                "netOfCommission": net_of_commission,
            },
        )

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def place_orders(
        self,
        market_id: str,
        instructions: Sequence[PlaceInstruction],
        customer_ref: Optional[str] = None,
        market_version: Optional[int] = None,
        customer_strategy_ref: Optional[str] = None,
        async_: bool = False,
    ) -> RpcResponse:
        return self._betting(
            "placeOrders",
            {
                "marketId": market_id,
                "instructions": list(instructions),
                "customerRef": customer_ref,
                "marketVersion": {"version": market_version} if market_version is not None else None,
                "customerStrategyRef": customer_strategy_ref,
                "async": async_,
            },
        )

    def cancel_orders(
        self,
        market_id: Optional[str] = None,
        instructions: Optional[Sequence[CancelInstruction]] = None,
        customer_ref: Optional[str] = None,
    ) -> RpcResponse:
        """Cancel bets; with no arguments every unmatched bet is cancelled."""

        return self._betting(
            "cancelOrders",
            {
                "marketId": market_id,
                "instructions": list(instructions) if instructions is not None else None,
                "customerRef": customer_ref,
            },
        )

    def replace_orders(
        self,
        market_id: str,
        instructions: Sequence[ReplaceInstruction],
        customer_ref: Optional[str] = None,
        market_version: Optional[int] = None,
        async_: bool = False,
    ) -> RpcResponse:
        return self._betting(
            "replaceOrders",
            {
                "marketId": market_id,
                "instructions": list(instructions),
                "customerRef": customer_ref,
                "marketVersion": {"version": market_version} if market_version is not None else None,
                "async": async_,
            },
        )

    def update_orders(
        self,
        market_id: str,
        instructions: Sequence[UpdateInstruction],
        customer_ref: Optional[str] = None,
    ) -> RpcResponse:
        return self._betting(
            "updateOrders",
            {"marketId": market_id, "instructions": list(instructions), "customerRef": customer_ref},
        )

    def list_current_orders(
        self,
        bet_ids: Optional[Sequence[str]] = None,
        market_ids: Optional[Sequence[str]] = None,
        order_projection: Optional[OrderProjection] = None,
        date_range: Optional[TimeRange] = None,
        order_by: Optional[OrderBy] = None,
        sort_dir: Optional[SortDir] = None,
        from_record: Optional[int] = None,
        record_count: Optional[int] = None,
    ) -> RpcResponse:
        return self._betting(
            "listCurrentOrders",
            {
                "betIds": list(bet_ids) if bet_ids is not None else None,
                "marketIds": list(market_ids) if market_ids is not None else None,
                "orderProjection": order_projection,
                "dateRange": date_range,
                "orderBy": order_by,
                "sortDir": sort_dir,
                "fromRecord": from_record,
                "recordCount": record_count,
            },
        )

    def list_cleared_orders(
        self,
        bet_status: BetStatus,
        event_type_ids: Optional[Sequence[str]] = None,
        event_ids: Optional[Sequence[str]] = None,
        market_ids: Optional[Sequence[str]] = None,
        runner_ids: Optional[Sequence[int]] = None,
        bet_ids: Optional[Sequence[str]] = None,
        side: Optional[Side] = None,
        settled_date_range: Optional[TimeRange] = None,
        group_by: Optional[GroupBy] = None,
        include_item_description: Optional[bool] = None,
        from_record: Optional[int] = None,
        record_count: Optional[int] = None,
    ) -> RpcResponse:
        return self._betting(
            "listClearedOrders",
            {
                "betStatus": bet_status,
                "eventTypeIds": event_type_ids,
                "eventIds": event_ids,
                "marketIds": market_ids,
                "runnerIds": runner_ids,
                "betIds": bet_ids,
                "side": side,
                "settledDateRange": settled_date_range,
                "groupBy": group_by,
                "includeItemDescription": include_item_description,
                "locale": self.locale,
                "fromRecord": from_record,
                "recordCount": record_count,
            },
        )

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------
    def list_currency_rates(self, from_currency: Optional[str] = None) -> RpcResponse:
        """Rates relative to ``from_currency``, defaulting to the configured base currency."""

        return self.session.fetch_currency_rates(from_currency or self.session.base_currency)
