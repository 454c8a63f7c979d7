"""Session credentials, identity endpoints and the auth state machine."""

from .credentials import SessionCredentials
from .identity import IdentityClient
from .session import Session, SessionSnapshot

__all__ = ["IdentityClient", "Session", "SessionCredentials", "SessionSnapshot"]
