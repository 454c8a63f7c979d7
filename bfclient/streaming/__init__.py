"""Exchange Stream binding: connection, market cache and factory."""

from .cache import MarketCache, RunnerCache
from .factory import StreamFactory
from .stream import DEFAULT_MARKET_FIELDS, ExchangeStream, build_stream_filter

__all__ = [
    "DEFAULT_MARKET_FIELDS",
    "ExchangeStream",
    "MarketCache",
    "RunnerCache",
    "StreamFactory",
    "build_stream_filter",
]
