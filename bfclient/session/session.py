"""Authenticated session and its login / keep-alive / logout state machine.

``UNAUTHENTICATED -> AUTHENTICATED -> UNAUTHENTICATED`` (on logout). The
credentials and the currency rate table are published together as one
immutable :class:`SessionSnapshot`; readers capture the snapshot once and keep
using it, so a concurrent login or logout never hands a request half-updated
credentials.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional

from bfclient.core.enums import IdentityStatus, SessionState
from bfclient.core.errors import (
    AuthenticationError,
    DependencyFetchError,
    LogoutError,
    SessionRefreshError,
    TransportError,
    UnauthenticatedDispatchError,
)
from bfclient.currency.rates import DEFAULT_BASE_CURRENCY, CurrencyRateTable, parse_currency_rates_response
from bfclient.rpc.transport import RpcResponse

from .credentials import SessionCredentials
from .identity import IdentityClient

if TYPE_CHECKING:
    from bfclient.rpc.dispatcher import RpcDispatcher

LOGGER = logging.getLogger(__name__)


def _identity_field(payload: Any, key: str) -> Any:
    """Read ``key`` from an identity response, tolerating non-object bodies."""

    return payload.get(key) if isinstance(payload, Mapping) else None


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Credentials and the rate table fetched with them."""

    credentials: SessionCredentials
    currency_rates: CurrencyRateTable


class Session:
    """Holds the current :class:`SessionSnapshot` and drives authentication.

    Parameters
    ----------
    identity:
        Client for the identity SSO endpoints.
    dispatcher:
        JSON-RPC dispatcher used for the post-login currency rate fetch.
    locale:
        Language attached to betting requests that accept a ``locale`` field.
    base_currency:
        Currency the rate table is fetched relative to.
    """

    def __init__(
        self,
        identity: IdentityClient,
        dispatcher: "RpcDispatcher",
        *,
        locale: str = "en",
        base_currency: str = DEFAULT_BASE_CURRENCY,
    ) -> None:
        self.locale = locale
        self.base_currency = base_currency
        self._identity = identity
        self._dispatcher = dispatcher
        self._lock = threading.Lock()
        self._snapshot: Optional[SessionSnapshot] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> Optional[SessionSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def state(self) -> SessionState:
        return SessionState.AUTHENTICATED if self.snapshot is not None else SessionState.UNAUTHENTICATED

    @property
    def credentials(self) -> Optional[SessionCredentials]:
        snapshot = self.snapshot
        return snapshot.credentials if snapshot else None

    @property
    def currency_rates(self) -> Optional[CurrencyRateTable]:
        snapshot = self.snapshot
        return snapshot.currency_rates if snapshot else None

    def require_snapshot(self) -> SessionSnapshot:
        snapshot = self.snapshot
        if snapshot is None:
            raise UnauthenticatedDispatchError("Session is not logged in")
        return snapshot

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def login(self, app_key: str, username: str, password: str) -> SessionSnapshot:
        """Exchange credentials, fetch currency rates, then publish both.

        Either step failing leaves the previous snapshot in place:
        :class:`AuthenticationError` when the identity endpoint rejects the
        credentials, :class:`DependencyFetchError` when the rate fetch fails.
        """

        payload = self._identity.login(app_key, username, password)
        status = _identity_field(payload, "status")
        token = _identity_field(payload, "token")
        if status != IdentityStatus.SUCCESS.value:
            raise AuthenticationError(f"Login failed: {_identity_field(payload, 'error') or status}", payload)
        if not token:
            raise AuthenticationError("Login succeeded without a session token", payload)

        credentials = SessionCredentials(app_key=app_key, session_token=token)
        try:
            response = self.fetch_currency_rates(self.base_currency, credentials)
        except TransportError as exc:
            raise DependencyFetchError(f"Error listing currency rates: {exc}") from exc
        table = parse_currency_rates_response(self.base_currency, response.payload)

        snapshot = SessionSnapshot(credentials=credentials, currency_rates=table)
        with self._lock:
            self._snapshot = snapshot
        LOGGER.info(
            "Logged in",
            extra={"base_currency": self.base_currency, "currency_count": len(table)},
        )
        return snapshot

    def logout(self) -> Optional[Mapping[str, Any]]:
        """Invalidate the session token and clear local state on success.

        Calling it while logged out is a no-op returning ``None``.
        """

        snapshot = self.snapshot
        if snapshot is None:
            LOGGER.info("Logout skipped, session is not authenticated")
            return None
        creds = snapshot.credentials
        payload = self._identity.logout(creds.session_token, creds.app_key)
        status = _identity_field(payload, "status")
        if status != IdentityStatus.SUCCESS.value:
            raise LogoutError(f"Logout failed: {_identity_field(payload, 'error') or status}", payload)
        with self._lock:
            # A login that raced with us already replaced the snapshot.
            if self._snapshot is snapshot:
                self._snapshot = None
        LOGGER.info("Logged out")
        return payload

    def keep_alive(self) -> Mapping[str, Any]:
        """Extend the session token validity. Stored values never change."""

        creds = self.require_snapshot().credentials
        payload = self._identity.keep_alive(creds.session_token, creds.app_key)
        status = _identity_field(payload, "status")
        if status != IdentityStatus.SUCCESS.value:
            raise SessionRefreshError(f"Keep-alive failed: {_identity_field(payload, 'error') or status}", payload)
        LOGGER.info("Session keep-alive accepted")
        return payload

    # ------------------------------------------------------------------
    # Account queries
    # ------------------------------------------------------------------
    def fetch_currency_rates(self, from_currency: str, credentials: Optional[SessionCredentials] = None) -> RpcResponse:
        """Issue ``listCurrencyRates`` with explicit or current credentials."""

        creds = credentials if credentials is not None else self.credentials
        return self._dispatcher.account("listCurrencyRates", {"fromCurrency": from_currency}, creds)
