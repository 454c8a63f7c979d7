"""Shared type aliases for readability and contract enforcement."""
from __future__ import annotations

from typing import Any, Callable, NewType, TypeAlias

MarketId = NewType("MarketId", str)

# Invoked with the market id and its updated ``MarketCache``.
MarketChangeCallback: TypeAlias = Callable[[MarketId, Any], None]
