"""Local order-book state rebuilt from Exchange Stream ``mcm`` messages.

Stream sizes are quoted in GBP. Every size stored here has already been
converted into the stream's target currency with the resolved rate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from bfclient.core.types import MarketId
from bfclient.currency.rates import CurrencyRate


def _apply_ladder(ladder: Dict[float, float], updates: Iterable[Sequence[float]], rate: CurrencyRate) -> None:
    for price, size in updates:
        if size == 0:
            ladder.pop(float(price), None)
        else:
            ladder[float(price)] = rate.convert(float(size))


@dataclass(slots=True)
class RunnerCache:
    """Available-to-back/lay and traded ladders for one selection."""

    selection_id: int
    handicap: float = 0.0
    available_to_back: Dict[float, float] = field(default_factory=dict)
    available_to_lay: Dict[float, float] = field(default_factory=dict)
    traded: Dict[float, float] = field(default_factory=dict)
    last_traded_price: Optional[float] = None
    traded_volume: float = 0.0

    @property
    def best_back(self) -> Optional[float]:
        return max(self.available_to_back) if self.available_to_back else None

    @property
    def best_lay(self) -> Optional[float]:
        return min(self.available_to_lay) if self.available_to_lay else None

    def apply(self, change: Mapping[str, Any], rate: CurrencyRate) -> None:
        _apply_ladder(self.available_to_back, change.get("atb", ()), rate)
        _apply_ladder(self.available_to_lay, change.get("atl", ()), rate)
        _apply_ladder(self.traded, change.get("trd", ()), rate)
        if "ltp" in change:
            self.last_traded_price = change["ltp"]
        if "tv" in change:
            self.traded_volume = rate.convert(float(change["tv"]))


@dataclass(slots=True)
class MarketCache:
    """Tracked state for a single market id."""

    market_id: MarketId
    publish_time: Optional[int] = None
    definition: Dict[str, Any] = field(default_factory=dict)
    total_matched: float = 0.0
    runners: Dict[tuple[int, float], RunnerCache] = field(default_factory=dict)

    @property
    def status(self) -> Optional[str]:
        return self.definition.get("status")

    @property
    def in_play(self) -> bool:
        return bool(self.definition.get("inPlay", False))

    def runner(self, selection_id: int, handicap: float = 0.0) -> Optional[RunnerCache]:
        return self.runners.get((selection_id, handicap))

    def apply(self, change: Mapping[str, Any], rate: CurrencyRate, publish_time: Optional[int] = None) -> None:
        """Apply one ``mc`` entry; ``img`` replaces the cached image first."""

        if change.get("img"):
            self.runners.clear()
            self.definition = {}
            self.total_matched = 0.0
        if publish_time is not None:
            self.publish_time = publish_time
        definition = change.get("marketDefinition")
        if definition:
            self.definition = dict(definition)
        if "tv" in change:
            self.total_matched = rate.convert(float(change["tv"]))
        for runner_change in change.get("rc", ()):
            key = (int(runner_change["id"]), float(runner_change.get("hc", 0.0)))
            runner = self.runners.get(key)
            if runner is None:
                runner = RunnerCache(selection_id=key[0], handicap=key[1])
                self.runners[key] = runner
            runner.apply(runner_change, rate)