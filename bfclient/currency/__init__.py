"""Currency rate table and target currency resolution."""

from .rates import (
    DEFAULT_BASE_CURRENCY,
    CurrencyRate,
    CurrencyRateTable,
    parse_currency_rates_response,
    resolve_target_currency,
)

__all__ = [
    "DEFAULT_BASE_CURRENCY",
    "CurrencyRate",
    "CurrencyRateTable",
    "parse_currency_rates_response",
    "resolve_target_currency",
]
