"""Typed request payloads for the betting operations.

Models use snake_case attributes and serialize to the camelCase names the
exchange expects, dropping unset fields. Validation happens when a model is
built, before anything reaches the dispatcher.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from bfclient.core.enums import (
    OrderType,
    PersistenceType,
    PriceData,
    Side,
    TimeInForce,
)


class ApiModel(BaseModel):
    """Base for every payload object sent to API-NG."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_params(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TimeRange(ApiModel):
    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None


class MarketFilter(ApiModel):
    """Selection criteria shared by the ``list*`` navigation operations."""

    text_query: Optional[str] = None
    event_type_ids: Optional[List[str]] = None
    event_ids: Optional[List[str]] = None
    competition_ids: Optional[List[str]] = None
    market_ids: Optional[List[str]] = None
    venues: Optional[List[str]] = None
    bsp_only: Optional[bool] = None
    turn_in_play_enabled: Optional[bool] = None
    in_play_only: Optional[bool] = None
    market_betting_types: Optional[List[str]] = None
    market_countries: Optional[List[str]] = None
    market_type_codes: Optional[List[str]] = None
    market_start_time: Optional[TimeRange] = None
    with_orders: Optional[List[str]] = None
    race_types: Optional[List[str]] = None


class PriceProjection(ApiModel):
    price_data: List[PriceData] = Field(default_factory=list)
    virtualise: Optional[bool] = None
    rollover_stakes: Optional[bool] = None


class LimitOrder(ApiModel):
    size: float = Field(..., gt=0)
    price: float = Field(..., gt=1.0)
    persistence_type: PersistenceType = PersistenceType.LAPSE
    time_in_force: Optional[TimeInForce] = None
    min_fill_size: Optional[float] = Field(None, ge=0)


class LimitOnCloseOrder(ApiModel):
    liability: float = Field(..., gt=0)
    price: float = Field(..., gt=1.0)


class MarketOnCloseOrder(ApiModel):
    liability: float = Field(..., gt=0)


class PlaceInstruction(ApiModel):
    """One bet to place; the order block must match ``order_type``."""

    order_type: OrderType
    selection_id: int
    side: Side
    handicap: Optional[float] = None
    limit_order: Optional[LimitOrder] = None
    limit_on_close_order: Optional[LimitOnCloseOrder] = None
    market_on_close_order: Optional[MarketOnCloseOrder] = None
    customer_order_ref: Optional[str] = Field(None, max_length=32)

    @model_validator(mode="after")
    def _check_order_block(self) -> "PlaceInstruction":
        required = {
            OrderType.LIMIT: self.limit_order,
            OrderType.LIMIT_ON_CLOSE: self.limit_on_close_order,
            OrderType.MARKET_ON_CLOSE: self.market_on_close_order,
        }
        if required[self.order_type] is None:
            raise ValueError(f"{self.order_type.value} instruction needs its order block")
        return self


class CancelInstruction(ApiModel):
    bet_id: str
    size_reduction: Optional[float] = Field(None, gt=0)


class ReplaceInstruction(ApiModel):
    bet_id: str
    new_price: float = Field(..., gt=1.0)


class UpdateInstruction(ApiModel):
    bet_id: str
    new_persistence_type: PersistenceType


def dump_params(value: Any) -> Any:
    """Serialize models, enums and containers of them into JSON-ready values."""

    if isinstance(value, ApiModel):
        return value.to_params()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: dump_params(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple)):
        return [dump_params(item) for item in value]
    return value
