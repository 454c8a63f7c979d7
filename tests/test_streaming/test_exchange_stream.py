from __future__ import annotations

import io
import json
from typing import Any, Dict, List

import pytest

from bfclient.core.errors import StreamError, UnauthenticatedDispatchError
from bfclient.currency.rates import CurrencyRate
from bfclient.streaming.stream import ExchangeStream, build_stream_filter


class FakeConnection(io.RawIOBase):
    """Duplex byte stream: scripted server lines in, client writes captured."""

    def __init__(self, lines: List[Dict[str, Any]]) -> None:
        self._incoming = io.BytesIO(b"".join(json.dumps(line).encode() + b"\r\n" for line in lines))
        self.sent: List[Dict[str, Any]] = []

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def readline(self, size: int = -1) -> bytes:
        return self._incoming.readline(size)

    def write(self, data: bytes) -> int:
        self.sent.append(json.loads(bytes(data)))
        return len(data)


class ScriptedStream(ExchangeStream):
    def __init__(self, *args, lines: List[Dict[str, Any]], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fake = FakeConnection(lines)

    def _open_connection(self):
        return self.fake


CONNECTION = {"op": "connection", "connectionId": "002-051134157842-432409"}
AUTH_OK = {"op": "status", "id": 1, "statusCode": "SUCCESS", "connectionClosed": False}


def _stream(session, lines, callback=None, rate: float = 1.0) -> ScriptedStream:
    return ScriptedStream(
        session,
        False,
        100,
        1000,
        CurrencyRate(currency_code="AUD", rate=rate),
        callback,
        lines=lines,
    )


def test_connect_should_authenticate_with_current_credentials(logged_in_client) -> None:
    stream = _stream(logged_in_client.session, [CONNECTION, AUTH_OK])

    stream.connect()

    assert stream.connection_id == "002-051134157842-432409"
    auth = stream.fake.sent[0]
    assert auth["op"] == "authentication"
    assert auth["appKey"] == "A1"
    assert auth["session"] == "T1"


def test_connect_should_replay_pending_subscription(logged_in_client) -> None:
    stream = _stream(logged_in_client.session, [CONNECTION, AUTH_OK])
    stream.subscribe(build_stream_filter(market_ids=["1.23"], event_type_ids=["7"]))

    stream.connect()

    subscription = stream.fake.sent[1]
    assert subscription["op"] == "marketSubscription"
    assert subscription["marketFilter"] == {"marketIds": ["1.23"], "eventTypeIds": ["7"]}
    assert subscription["conflateMs"] == 100
    assert subscription["heartbeatMs"] == 1000
    assert subscription["segmentationEnabled"] is False
    assert "EX_MARKET_DEF" in subscription["marketDataFilter"]["fields"]


def test_connect_should_fail_on_auth_failure(logged_in_client) -> None:
    failure = {"op": "status", "statusCode": "FAILURE", "errorCode": "NO_SESSION", "errorMessage": "expired"}
    stream = _stream(logged_in_client.session, [CONNECTION, failure])

    with pytest.raises(StreamError, match="NO_SESSION"):
        stream.connect()

    assert stream.connected is False
    assert stream.closed is False
    assert stream.fake.closed is True


def test_subscribe_after_failed_auth_should_not_write_to_rejected_connection(logged_in_client) -> None:
    closing = {"op": "status", "statusCode": "SUCCESS", "connectionClosed": True}
    stream = _stream(logged_in_client.session, [CONNECTION, closing])

    with pytest.raises(StreamError, match="closed the stream"):
        stream.connect()
    stream.subscribe(build_stream_filter(market_ids=["1.23"]))

    assert [message["op"] for message in stream.fake.sent] == ["authentication"]


def test_reconnect_should_release_previous_connection_and_use_new_token(logged_in_client, fake_exchange) -> None:
    stream = _stream(logged_in_client.session, [CONNECTION, AUTH_OK])
    stream.connect()
    first = stream.fake

    fake_exchange.login_payload = {"token": "T2", "status": "SUCCESS", "error": ""}
    logged_in_client.login("A1", "user", "secret")
    stream.fake = FakeConnection([CONNECTION, AUTH_OK])
    stream.connect()

    assert first.closed is True
    assert stream.connected is True
    assert stream.closed is False
    assert stream.fake.sent[0]["session"] == "T2"


def test_connect_should_require_logged_in_session(client) -> None:
    stream = _stream(client.session, [CONNECTION, AUTH_OK])

    with pytest.raises(UnauthenticatedDispatchError):
        stream.connect()


def test_run_should_fold_changes_into_cache_and_notify(logged_in_client) -> None:
    changes: List[str] = []
    image = {
        "op": "mcm",
        "ct": "SUB_IMAGE",
        "pt": 1700000000000,
        "clk": "AAA",
        "initialClk": "BBB",
        "mc": [
            {
                "id": "1.23",
                "img": True,
                "tv": 100.0,
                "marketDefinition": {"status": "OPEN", "inPlay": False},
                "rc": [{"id": 101, "atb": [[2.0, 10.0], [1.9, 5.0]], "atl": [[2.1, 4.0]], "ltp": 2.02, "tv": 50.0}],
            }
        ],
    }
    delta = {
        "op": "mcm",
        "pt": 1700000000500,
        "clk": "CCC",
        "mc": [{"id": "1.23", "rc": [{"id": 101, "atb": [[2.0, 0]]}]}],
    }
    stream = _stream(
        logged_in_client.session,
        [CONNECTION, AUTH_OK, image, {"op": "mcm", "ct": "HEARTBEAT", "clk": "CCC"}, delta],
        callback=lambda market_id, market: changes.append(market_id),
        rate=2.0,
    )

    with pytest.raises(StreamError, match="closed by exchange"):
        stream.run()

    assert changes == ["1.23", "1.23"]
    assert stream.clk == "CCC"
    assert stream.initial_clk == "BBB"
    market = stream.cache["1.23"]
    assert market.status == "OPEN"
    assert market.publish_time == 1700000000500
    assert market.total_matched == pytest.approx(200.0)
    runner = market.runner(101)
    assert runner is not None
    assert runner.available_to_back == {1.9: pytest.approx(10.0)}
    assert runner.best_back == 1.9
    assert runner.best_lay == 2.1
    assert runner.last_traded_price == 2.02
    assert runner.traded_volume == pytest.approx(100.0)


def test_cache_should_be_read_only(logged_in_client) -> None:
    stream = _stream(logged_in_client.session, [])

    with pytest.raises(TypeError):
        stream.cache["1.23"] = None  # type: ignore[index]


def test_close_should_stop_stream_and_block_reconnect(logged_in_client) -> None:
    stream = _stream(logged_in_client.session, [CONNECTION, AUTH_OK])
    stream.connect()

    stream.close()
    stream.close()

    assert stream.closed is True
    assert stream.connected is False
    with pytest.raises(StreamError):
        stream.connect()


def test_image_should_reset_previous_runner_state(logged_in_client) -> None:
    stream = _stream(logged_in_client.session, [])
    stream.process_message({"op": "mcm", "mc": [{"id": "1.5", "rc": [{"id": 1, "atb": [[3.0, 2.0]]}]}]})
    stream.process_message({"op": "mcm", "mc": [{"id": "1.5", "img": True, "rc": [{"id": 2, "atl": [[4.0, 1.0]]}]}]})

    market = stream.cache["1.5"]
    assert market.runner(1) is None
    assert market.runner(2).available_to_lay == {4.0: 1.0}


def test_heartbeat_should_be_clamped_to_exchange_range(logged_in_client) -> None:
    low = ExchangeStream(logged_in_client.session, False, 0, 0, CurrencyRate(currency_code="GBP", rate=1.0))
    high = ExchangeStream(logged_in_client.session, False, 0, 60000, CurrencyRate(currency_code="GBP", rate=1.0))

    assert low.heartbeat_ms == 500
    assert low.subscribe({})["heartbeatMs"] == 500
    assert high.heartbeat_ms == 5000


def test_build_stream_filter_should_drop_empty_fields() -> None:
    assert build_stream_filter(market_ids=["1.1"], event_type_ids=[]) == {"marketIds": ["1.1"]}
