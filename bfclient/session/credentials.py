"""Immutable credential snapshot attached to every authenticated request."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SessionCredentials:
    """Application key plus the session token issued by the identity endpoint."""

    app_key: str
    session_token: str

    def __repr__(self) -> str:
        return f"SessionCredentials(app_key={self.app_key!r}, session_token='***')"
