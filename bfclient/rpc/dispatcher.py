"""JSON-RPC dispatch for the API-NG betting and account endpoints.

Every request is wrapped in the fixed envelope::

    {"jsonrpc": "2.0", "method": "<Namespace>/v1.0/<op>", "params": {...}, "id": <int>}

and sent with the session credentials of the snapshot passed in by the
caller. The dispatcher keeps no per-request state, so concurrent calls only
share the packet id generator, which is lock-protected.
"""
from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any, Dict, Mapping, Optional

import httpx

from bfclient.core.enums import ApiNamespace
from bfclient.core.errors import UnauthenticatedDispatchError
from bfclient.session.credentials import SessionCredentials

from .transport import JSON_CONTENT_TYPE, RpcResponse, post

LOGGER = logging.getLogger(__name__)

BETTING_URL = "https://api.betfair.com/exchange/betting/json-rpc/v1"
ACCOUNT_URL = "https://api.betfair.com/exchange/account/json-rpc/v1"

NAMESPACE_URLS: Mapping[ApiNamespace, str] = {
    ApiNamespace.BETTING: BETTING_URL,
    ApiNamespace.ACCOUNT: ACCOUNT_URL,
}

JSONRPC_VERSION = "2.0"


class PacketIdGenerator:
    """Process-wide source of JSON-RPC ``id`` values. Ids are never reused."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._counter)


_DEFAULT_ID_GENERATOR = PacketIdGenerator()


def build_envelope(namespace: ApiNamespace, method: str, params: Mapping[str, Any], packet_id: int) -> Dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": f"{namespace.value}{method}",
        "params": dict(params),
        "id": packet_id,
    }


def auth_headers(credentials: SessionCredentials) -> Dict[str, str]:
    return {
        "accept": JSON_CONTENT_TYPE,
        "content-type": JSON_CONTENT_TYPE,
        "x-authentication": credentials.session_token,
        "x-application": credentials.app_key,
    }


class RpcDispatcher:
    """Sends signed JSON-RPC requests through an injectable ``httpx.Client``.

    Parameters
    ----------
    client:
        Transport used for every request (tests pass one built on
        :class:`httpx.MockTransport`).
    id_generator:
        Packet id source; defaults to the process-wide generator so ids stay
        unique across dispatcher instances.
    """

    def __init__(self, client: httpx.Client, id_generator: Optional[PacketIdGenerator] = None) -> None:
        self._client = client
        self._ids = id_generator or _DEFAULT_ID_GENERATOR

    def dispatch(
        self,
        namespace: ApiNamespace,
        method: str,
        params: Mapping[str, Any],
        credentials: Optional[SessionCredentials],
    ) -> RpcResponse:
        """Send one JSON-RPC request and return the raw response.

        Exchange-level errors arrive inside 200 bodies and are left for the
        caller to interpret via :attr:`RpcResponse.error`.
        """

        if credentials is None:
            raise UnauthenticatedDispatchError(f"Cannot call {namespace.value}{method} before login")
        envelope = build_envelope(namespace, method, params, self._ids.next_id())
        body = json.dumps(envelope, separators=(",", ":"))
        LOGGER.debug("Dispatching %s", envelope["method"], extra={"packet_id": envelope["id"]})
        return post(self._client, NAMESPACE_URLS[namespace], body, auth_headers(credentials))

    def betting(self, method: str, params: Mapping[str, Any], credentials: Optional[SessionCredentials]) -> RpcResponse:
        return self.dispatch(ApiNamespace.BETTING, method, params, credentials)

    def account(self, method: str, params: Mapping[str, Any], credentials: Optional[SessionCredentials]) -> RpcResponse:
        return self.dispatch(ApiNamespace.ACCOUNT, method, params, credentials)
