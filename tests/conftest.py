from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from bfclient.client import BetfairClient
from bfclient.config.models import ClientConfig, StreamConfig
from bfclient.rpc.dispatcher import ACCOUNT_URL, BETTING_URL, PacketIdGenerator
from bfclient.session.identity import INTERACTIVE_LOGIN_URL, KEEP_ALIVE_URL, LOGOUT_URL


def _key(url: str | httpx.URL) -> tuple[str, str]:
    parsed = httpx.URL(url)
    return parsed.host, parsed.path


class FakeExchange:
    """In-memory stand-in for the identity and API-NG endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.login_payload: Dict[str, Any] = {
            "token": "T1",
            "product": "home.betfair.int",
            "status": "SUCCESS",
            "error": "",
        }
        self.logout_payload: Dict[str, Any] = {"token": "T1", "status": "SUCCESS", "error": ""}
        self.keep_alive_payload: Dict[str, Any] = {"token": "T1", "status": "SUCCESS", "error": ""}
        self.rates: List[Dict[str, Any]] = [{"currencyCode": "GBP", "rate": 1.0}]
        self.rates_status = 200
        self.rates_error: Optional[Dict[str, Any]] = None
        self.results: Dict[str, Any] = {}
        self.failures: Dict[str, type[httpx.TransportError]] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path in self.failures:
            raise self.failures[request.url.path]("connection refused", request=request)
        key = _key(request.url)
        if key == _key(INTERACTIVE_LOGIN_URL):
            return httpx.Response(200, json=self.login_payload)
        if key == _key(LOGOUT_URL):
            return httpx.Response(200, json=self.logout_payload)
        if key == _key(KEEP_ALIVE_URL):
            return httpx.Response(200, json=self.keep_alive_payload)
        body = json.loads(request.content)
        method = body["method"]
        if method == "AccountAPING/v1.0/listCurrencyRates":
            if self.rates_error is not None:
                return httpx.Response(200, json={"jsonrpc": "2.0", "error": self.rates_error, "id": body["id"]})
            return httpx.Response(self.rates_status, json={"jsonrpc": "2.0", "result": self.rates, "id": body["id"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "result": self.results.get(method, []), "id": body["id"]})

    @property
    def rpc_requests(self) -> List[httpx.Request]:
        return [req for req in self.requests if _key(req.url) in {_key(BETTING_URL), _key(ACCOUNT_URL)}]

    def rpc_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(req.content) for req in self.rpc_requests]

    def last_form(self) -> Dict[str, List[str]]:
        return parse_qs(self.requests[-1].content.decode("utf-8"))


class RecordingStream:
    """Stream double capturing constructor arguments instead of connecting."""

    def __init__(self, session, segmentation_enabled, conflate_ms, heartbeat_ms, target_currency, callback=None):
        self.session = session
        self.segmentation_enabled = segmentation_enabled
        self.conflate_ms = conflate_ms
        self.heartbeat_ms = heartbeat_ms
        self.target_currency = target_currency
        self.callback = callback
        self.closed = False
        self.cache = {"1.23": "market-state"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture()
def http_client(fake_exchange: FakeExchange):
    client = httpx.Client(transport=httpx.MockTransport(fake_exchange.handler))
    yield client
    client.close()


@pytest.fixture()
def client(http_client: httpx.Client) -> BetfairClient:
    return BetfairClient(
        ClientConfig(locale="en"),
        StreamConfig(currency_code="GBP", conflate_ms=100, heartbeat_ms=1000),
        http_client,
        id_generator=PacketIdGenerator(),
        stream_builder=RecordingStream,
    )


@pytest.fixture()
def logged_in_client(client: BetfairClient) -> BetfairClient:
    client.login("A1", "user", "secret")
    return client
