"""Core primitives shared across all subsystems.

Enums, type aliases and the error hierarchy live here so that the session,
dispatch and streaming packages can import them without circular imports.
"""

from . import enums, errors, types

__all__ = ["enums", "errors", "types"]
