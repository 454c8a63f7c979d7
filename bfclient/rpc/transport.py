"""HTTP transport helpers shared by the identity and JSON-RPC clients.

The helpers here never retry and never inspect the JSON body: every
``httpx`` failure and every non-2xx status is re-raised as
:class:`TransportError` with the original exception chained.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from bfclient.core.errors import TransportError

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True, slots=True)
class RpcResponse:
    """Raw transport result: HTTP status, parsed body and measured latency."""

    status_code: int
    payload: Any
    latency_ms: float

    @property
    def result(self) -> Any:
        """JSON-RPC ``result`` member, or ``None`` for error bodies."""

        if isinstance(self.payload, Mapping):
            return self.payload.get("result")
        return None

    @property
    def error(self) -> Any:
        """JSON-RPC ``error`` member (exchange-level failure in a 200 body)."""

        if isinstance(self.payload, Mapping):
            return self.payload.get("error")
        return None


def post(client: httpx.Client, url: str, body: str, headers: Mapping[str, str]) -> RpcResponse:
    """POST ``body`` to ``url`` and return the decoded response."""

    content = body.encode("utf-8")
    request_headers = dict(headers)
    request_headers["content-length"] = str(len(content))
    start = time.perf_counter()
    try:
        response = client.post(url, content=content, headers=request_headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(
            f"POST {url} returned HTTP {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"POST {url} failed: {exc}") from exc
    latency_ms = (time.perf_counter() - start) * 1_000.0
    try:
        payload = response.json()
    except ValueError as exc:
        raise TransportError(f"POST {url} returned a non-JSON body", status_code=response.status_code) from exc
    return RpcResponse(status_code=response.status_code, payload=payload, latency_ms=latency_ms)
