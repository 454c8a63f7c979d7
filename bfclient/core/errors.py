"""Error hierarchy shared by the client subsystems.

Every failure is raised synchronously to the caller of the failing
operation. Nothing here is retried; callers decide whether to log in again,
re-issue a request or give up.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional


class CoreError(Exception):
    """Base class for all custom exceptions in the client."""


class ConfigurationError(CoreError):
    """Raised when configuration files are missing or invalid."""


class AuthenticationError(CoreError):
    """Raised when the identity endpoint does not report ``SUCCESS``."""

    def __init__(self, message: str, payload: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.payload = payload or {}


class DependencyFetchError(CoreError):
    """Raised when the post-login currency rate fetch fails.

    The credentials were accepted by the identity endpoint but the session is
    not published, so the client stays unusable until a full login succeeds.
    """


class SessionRefreshError(CoreError):
    """Raised when keep-alive is rejected. Session values are unchanged."""

    def __init__(self, message: str, payload: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.payload = payload or {}


class LogoutError(CoreError):
    """Raised when the logout endpoint does not report ``SUCCESS``."""

    def __init__(self, message: str, payload: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.payload = payload or {}


class CurrencyResolutionError(CoreError):
    """Raised when a currency code has no entry in the rate table."""


class TransportError(CoreError):
    """Opaque wrapper for network failures and non-2xx HTTP responses."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthenticatedDispatchError(CoreError):
    """Raised when an operation needs a session but no login succeeded."""


class StreamError(CoreError):
    """Raised for Exchange Stream connection or protocol failures."""


class StreamAlreadyActiveError(StreamError):
    """Raised when a stream is requested while another one is still open."""
