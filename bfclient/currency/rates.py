"""Currency rate table returned by ``AccountAPING/v1.0/listCurrencyRates``.

Rates are conversion factors relative to a base currency (GBP unless the
session is configured otherwise). The table is fetched once per login and is
never mutated afterwards; a later login replaces it wholesale.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bfclient.core.errors import CurrencyResolutionError, DependencyFetchError

DEFAULT_BASE_CURRENCY = "GBP"


class CurrencyRate(BaseModel):
    """Single ``CurrencyRate`` entry (``currencyCode`` + ``rate``)."""

    currency_code: str = Field(..., alias="currencyCode", min_length=1)
    rate: float = Field(..., gt=0)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def convert(self, amount_in_base: float) -> float:
        """Return ``amount_in_base`` expressed in this currency."""

        return amount_in_base * self.rate


@dataclass(frozen=True, slots=True)
class CurrencyRateTable:
    """Immutable collection of rates sharing the same base currency."""

    base_currency: str
    rates: Sequence[CurrencyRate]

    def __iter__(self) -> Iterator[CurrencyRate]:
        return iter(self.rates)

    def __len__(self) -> int:
        return len(self.rates)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(rate.currency_code for rate in self.rates)

    @classmethod
    def from_entries(cls, base_currency: str, entries: Iterable[Mapping[str, Any] | CurrencyRate]) -> "CurrencyRateTable":
        rates = tuple(
            entry if isinstance(entry, CurrencyRate) else CurrencyRate.model_validate(entry)
            for entry in entries
        )
        return cls(base_currency=base_currency, rates=rates)


def parse_currency_rates_response(base_currency: str, payload: Mapping[str, Any] | None) -> CurrencyRateTable:
    """Convert a ``listCurrencyRates`` JSON-RPC body into a rate table.

    Raises :class:`DependencyFetchError` when the body carries a JSON-RPC
    ``error`` or a ``result`` that is not a list of rate entries.
    """

    if not payload:
        raise DependencyFetchError("Empty listCurrencyRates response")
    if payload.get("error"):
        raise DependencyFetchError(f"listCurrencyRates failed: {payload['error']}")
    result = payload.get("result")
    if not isinstance(result, list):
        raise DependencyFetchError("listCurrencyRates response has no result list")
    try:
        return CurrencyRateTable.from_entries(base_currency, result)
    except ValidationError as exc:
        raise DependencyFetchError(f"Malformed currency rate entry: {exc}") from exc


def resolve_target_currency(table: Optional[CurrencyRateTable], currency_code: str) -> CurrencyRate:
    """Return the entry for ``currency_code``; the first one wins on duplicates.

    Stake and PnL conversions depend on the rate, so a missing code is fatal
    instead of defaulting to 1.0.
    """

    if table is not None:
        for rate in table:
            if rate.currency_code == currency_code:
                return rate
    raise CurrencyResolutionError(f"Can't find the currency rate for {currency_code}")
