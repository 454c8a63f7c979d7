"""Enumerations shared across client subsystems."""
from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Authentication state of a :class:`bfclient.session.Session`."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class ApiNamespace(str, Enum):
    """JSON-RPC method namespaces exposed by API-NG."""

    BETTING = "SportsAPING/v1.0/"
    ACCOUNT = "AccountAPING/v1.0/"


class IdentityStatus(str, Enum):
    """``status`` values returned by the identity SSO endpoints."""

    SUCCESS = "SUCCESS"
    LIMITED_ACCESS = "LIMITED_ACCESS"
    LOGIN_RESTRICTED = "LOGIN_RESTRICTED"
    FAIL = "FAIL"


class MarketProjection(str, Enum):
    """Extra data ``listMarketCatalogue`` should return per market."""

    COMPETITION = "COMPETITION"
    EVENT = "EVENT"
    EVENT_TYPE = "EVENT_TYPE"
    MARKET_START_TIME = "MARKET_START_TIME"
    MARKET_DESCRIPTION = "MARKET_DESCRIPTION"
    RUNNER_DESCRIPTION = "RUNNER_DESCRIPTION"
    RUNNER_METADATA = "RUNNER_METADATA"


class MarketSort(str, Enum):
    MINIMUM_TRADED = "MINIMUM_TRADED"
    MAXIMUM_TRADED = "MAXIMUM_TRADED"
    MINIMUM_AVAILABLE = "MINIMUM_AVAILABLE"
    MAXIMUM_AVAILABLE = "MAXIMUM_AVAILABLE"
    FIRST_TO_START = "FIRST_TO_START"
    LAST_TO_START = "LAST_TO_START"


class PriceData(str, Enum):
    SP_AVAILABLE = "SP_AVAILABLE"
    SP_TRADED = "SP_TRADED"
    EX_BEST_OFFERS = "EX_BEST_OFFERS"
    EX_ALL_OFFERS = "EX_ALL_OFFERS"
    EX_TRADED = "EX_TRADED"


class OrderProjection(str, Enum):
    ALL = "ALL"
    EXECUTABLE = "EXECUTABLE"
    EXECUTION_COMPLETE = "EXECUTION_COMPLETE"


class MatchProjection(str, Enum):
    NO_ROLLUP = "NO_ROLLUP"
    ROLLED_UP_BY_PRICE = "ROLLED_UP_BY_PRICE"
    ROLLED_UP_BY_AVG_PRICE = "ROLLED_UP_BY_AVG_PRICE"


class TimeGranularity(str, Enum):
    DAYS = "DAYS"
    HOURS = "HOURS"
    MINUTES = "MINUTES"


class Side(str, Enum):
    """Direction of a bet."""

    BACK = "BACK"
    LAY = "LAY"


class OrderType(str, Enum):
    LIMIT = "LIMIT"
    LIMIT_ON_CLOSE = "LIMIT_ON_CLOSE"
    MARKET_ON_CLOSE = "MARKET_ON_CLOSE"


class PersistenceType(str, Enum):
    """What happens to unmatched bets when the market turns in-play."""

    LAPSE = "LAPSE"
    PERSIST = "PERSIST"
    MARKET_ON_CLOSE = "MARKET_ON_CLOSE"


class TimeInForce(str, Enum):
    FILL_OR_KILL = "FILL_OR_KILL"


class BetStatus(str, Enum):
    SETTLED = "SETTLED"
    VOIDED = "VOIDED"
    LAPSED = "LAPSED"
    CANCELLED = "CANCELLED"


class SortDir(str, Enum):
    EARLIEST_TO_LATEST = "EARLIEST_TO_LATEST"
    LATEST_TO_EARLIEST = "LATEST_TO_EARLIEST"


class OrderBy(str, Enum):
    BY_BET = "BY_BET"
    BY_MARKET = "BY_MARKET"
    BY_MATCH_TIME = "BY_MATCH_TIME"
    BY_PLACE_TIME = "BY_PLACE_TIME"
    BY_SETTLED_TIME = "BY_SETTLED_TIME"
    BY_VOID_TIME = "BY_VOID_TIME"


class GroupBy(str, Enum):
    EVENT_TYPE = "EVENT_TYPE"
    EVENT = "EVENT"
    MARKET = "MARKET"
    SIDE = "SIDE"
    BET = "BET"
