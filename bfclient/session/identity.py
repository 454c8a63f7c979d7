"""Identity SSO endpoints: interactive login, logout and keep-alive.

All three take a form-encoded body and answer with JSON of the shape
``{"token": ..., "product": ..., "status": "SUCCESS" | ..., "error": ...}``.
The caller decides what a non-``SUCCESS`` status means.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from bfclient.rpc.transport import FORM_CONTENT_TYPE, JSON_CONTENT_TYPE, post

INTERACTIVE_LOGIN_URL = "https://identitysso.betfair.com.au/api/login"
# Certificate login for bots; declared for completeness, no operation uses it yet.
BOT_LOGIN_URL = "https://identitysso-api.betfair.com.au/api/certlogin"
LOGOUT_URL = "https://identitysso.betfair.com.au/api/logout"
KEEP_ALIVE_URL = "https://identitysso.betfair.com.au/api/keepAlive"

PRODUCT = "home.betfair.int"
PRODUCT_URL = "https://www.betfair.com/"


def _form_headers(*, app_key: Optional[str] = None, session_token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "accept": JSON_CONTENT_TYPE,
        "content-type": FORM_CONTENT_TYPE,
    }
    if app_key:
        headers["x-application"] = app_key
    if session_token:
        headers["x-authentication"] = session_token
    return headers


class IdentityClient:
    """Thin wrapper over the identity endpoints sharing one ``httpx.Client``."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def login(self, app_key: str, username: str, password: str) -> Mapping[str, Any]:
        """Submit interactive credentials and return the decoded body."""

        form = urlencode(
            {
                "username": username,
                "password": password,
                "login": "true",
                "redirectMethod": "POST",
                "product": PRODUCT,
                "url": PRODUCT_URL,
            }
        )
        response = post(self._client, INTERACTIVE_LOGIN_URL, form, _form_headers(app_key=app_key))
        return response.payload or {}

    def logout(self, session_token: str, app_key: Optional[str] = None) -> Mapping[str, Any]:
        form = urlencode({"product": PRODUCT, "url": PRODUCT_URL})
        headers = _form_headers(app_key=app_key, session_token=session_token)
        return post(self._client, LOGOUT_URL, form, headers).payload or {}

    def keep_alive(self, session_token: str, app_key: Optional[str] = None) -> Mapping[str, Any]:
        form = urlencode({"product": PRODUCT, "url": PRODUCT_URL})
        headers = _form_headers(app_key=app_key, session_token=session_token)
        return post(self._client, KEEP_ALIVE_URL, form, headers).payload or {}
