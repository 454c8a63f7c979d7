from __future__ import annotations

import pytest

from bfclient.client import BetfairClient
from bfclient.config.models import ClientConfig
from bfclient.core.enums import (
    BetStatus,
    MarketProjection,
    MarketSort,
    OrderProjection,
    OrderType,
    PersistenceType,
    PriceData,
    Side,
    TimeGranularity,
)
from bfclient.core.errors import UnauthenticatedDispatchError
from bfclient.rpc.params import (
    CancelInstruction,
    LimitOrder,
    MarketFilter,
    PlaceInstruction,
    PriceProjection,
    ReplaceInstruction,
    UpdateInstruction,
)


def _last_body(fake_exchange):
    return fake_exchange.rpc_bodies()[-1]


def test_list_market_catalogue_should_build_envelope(logged_in_client, fake_exchange) -> None:
    fake_exchange.results["SportsAPING/v1.0/listMarketCatalogue"] = [{"marketId": "1.23"}]

    response = logged_in_client.list_market_catalogue(
        MarketFilter(event_type_ids=["7"]),
        [MarketProjection.EVENT],
        MarketSort.FIRST_TO_START,
        10,
    )

    body = _last_body(fake_exchange)
    assert body["jsonrpc"] == "2.0"
    assert body["method"] == "SportsAPING/v1.0/listMarketCatalogue"
    assert body["params"] == {
        "filter": {"eventTypeIds": ["7"]},
        "marketProjection": ["EVENT"],
        "sort": "FIRST_TO_START",
        "maxResults": 10,
        "locale": "en",
    }
    assert response.result == [{"marketId": "1.23"}]


def test_operations_should_require_login(client, fake_exchange) -> None:
    with pytest.raises(UnauthenticatedDispatchError):
        client.list_market_catalogue(MarketFilter(), [MarketProjection.EVENT], None, 10)
    with pytest.raises(UnauthenticatedDispatchError):
        client.list_currency_rates("EUR")
    assert fake_exchange.requests == []


@pytest.mark.parametrize(
    "method_name,wire_name",
    [
        ("list_event_types", "listEventTypes"),
        ("list_competitions", "listCompetitions"),
        ("list_events", "listEvents"),
        ("list_market_types", "listMarketTypes"),
        ("list_countries", "listCountries"),
        ("list_venues", "listVenues"),
    ],
)
def test_filter_queries_should_send_filter_and_locale(logged_in_client, fake_exchange, method_name, wire_name) -> None:
    getattr(logged_in_client, method_name)(MarketFilter(text_query="Flemington"))

    body = _last_body(fake_exchange)
    assert body["method"] == f"SportsAPING/v1.0/{wire_name}"
    assert body["params"] == {"filter": {"textQuery": "Flemington"}, "locale": "en"}


def test_list_time_ranges_should_send_granularity(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_time_ranges(MarketFilter(), TimeGranularity.HOURS)

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/listTimeRanges"
    assert body["params"] == {"filter": {}, "granularity": "HOURS"}


def test_list_market_book_should_drop_unset_projections(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_market_book(
        ["1.23", "1.24"],
        price_projection=PriceProjection(price_data=[PriceData.EX_BEST_OFFERS]),
        order_projection=OrderProjection.EXECUTABLE,
    )

    params = _last_body(fake_exchange)["params"]
    assert params == {
        "marketIds": ["1.23", "1.24"],
        "priceProjection": {"priceData": ["EX_BEST_OFFERS"]},
        "orderProjection": "EXECUTABLE",
        "locale": "en",
    }


def test_list_market_profit_and_loss_should_send_flags(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_market_profit_and_loss(["1.23"], True, False, True)

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/listMarketProfitAndLoss"
    assert body["params"] == {
        "marketIds": ["1.23"],
        "includeSettledBets": True,
        "includeBspBets": False,
        "netOfCommission": True,
    }


def test_place_orders_should_serialize_instructions(logged_in_client, fake_exchange) -> None:
    instruction = PlaceInstruction(
        order_type=OrderType.LIMIT,
        selection_id=101,
        side=Side.BACK,
        limit_order=LimitOrder(size=5.0, price=2.5, persistence_type=PersistenceType.LAPSE),
    )

    logged_in_client.place_orders("1.23", [instruction], customer_ref="ref-1", market_version=42)

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/placeOrders"
    assert body["params"] == {
        "marketId": "1.23",
        "instructions": [
            {
                "orderType": "LIMIT",
                "selectionId": 101,
                "side": "BACK",
                "limitOrder": {"size": 5.0, "price": 2.5, "persistenceType": "LAPSE"},
            }
        ],
        "customerRef": "ref-1",
        "marketVersion": {"version": 42},
        "async": False,
    }


def test_cancel_orders_without_arguments_should_cancel_everything(logged_in_client, fake_exchange) -> None:
    logged_in_client.cancel_orders()

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/cancelOrders"
    assert body["params"] == {}


def test_cancel_replace_update_should_send_instructions(logged_in_client, fake_exchange) -> None:
    logged_in_client.cancel_orders("1.23", [CancelInstruction(bet_id="9", size_reduction=1.5)])
    logged_in_client.replace_orders("1.23", [ReplaceInstruction(bet_id="9", new_price=3.0)], async_=True)
    logged_in_client.update_orders("1.23", [UpdateInstruction(bet_id="9", new_persistence_type=PersistenceType.PERSIST)])

    cancel, replace, update = fake_exchange.rpc_bodies()[-3:]
    assert cancel["params"]["instructions"] == [{"betId": "9", "sizeReduction": 1.5}]
    assert replace["params"] == {
        "marketId": "1.23",
        "instructions": [{"betId": "9", "newPrice": 3.0}],
        "async": True,
    }
    assert update["method"] == "SportsAPING/v1.0/updateOrders"
    assert update["params"]["instructions"] == [{"betId": "9", "newPersistenceType": "PERSIST"}]


def test_list_current_orders_should_only_send_given_fields(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_current_orders(market_ids=["1.23"], order_projection=OrderProjection.ALL, record_count=50)

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/listCurrentOrders"
    assert body["params"] == {"marketIds": ["1.23"], "orderProjection": "ALL", "recordCount": 50}


def test_list_cleared_orders_should_send_bet_status_and_locale(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_cleared_orders(BetStatus.SETTLED, event_type_ids=["7"], side=Side.LAY)

    body = _last_body(fake_exchange)
    assert body["method"] == "SportsAPING/v1.0/listClearedOrders"
    assert body["params"] == {"betStatus": "SETTLED", "eventTypeIds": ["7"], "side": "LAY", "locale": "en"}


def test_list_currency_rates_should_use_account_namespace(logged_in_client, fake_exchange) -> None:
    response = logged_in_client.list_currency_rates("AUD")

    body = _last_body(fake_exchange)
    assert body["method"] == "AccountAPING/v1.0/listCurrencyRates"
    assert body["params"] == {"fromCurrency": "AUD"}
    assert response.result == [{"currencyCode": "GBP", "rate": 1.0}]


def test_list_currency_rates_should_default_to_configured_base_currency(http_client, fake_exchange) -> None:
    client = BetfairClient(ClientConfig(base_currency="eur"), http_client=http_client)
    client.login("A1", "user", "secret")

    client.list_currency_rates()

    assert [body["params"] for body in fake_exchange.rpc_bodies()] == [{"fromCurrency": "EUR"}] * 2


def test_every_dispatch_should_carry_a_fresh_packet_id(logged_in_client, fake_exchange) -> None:
    logged_in_client.list_events(MarketFilter())
    logged_in_client.list_events(MarketFilter())

    ids = [body["id"] for body in fake_exchange.rpc_bodies()]
    assert len(ids) == len(set(ids))


def test_close_should_not_close_injected_http_client(logged_in_client, http_client) -> None:
    logged_in_client.close()
    assert http_client.is_closed is False
