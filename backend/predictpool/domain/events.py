"""Notifications published to the audit sink after a committed operation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from .models import Direction, Outcome


@dataclass(frozen=True, slots=True)
class MarketEvent:
    name: ClassVar[str] = "market_event"

    round_id: int

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            payload[key] = value
        return payload


@dataclass(frozen=True, slots=True)
class MarketOpened(MarketEvent):
    name: ClassVar[str] = "market_opened"

    asset: str
    open_price: int
    close_time: datetime


@dataclass(frozen=True, slots=True)
class PredictionPlaced(MarketEvent):
    name: ClassVar[str] = "prediction_placed"

    participant: str
    direction: Direction
    wager: int


@dataclass(frozen=True, slots=True)
class RoundSettled(MarketEvent):
    name: ClassVar[str] = "round_settled"

    close_price: int
    outcome: Outcome
    is_push: bool
    net_pool: int


@dataclass(frozen=True, slots=True)
class Claimed(MarketEvent):
    name: ClassVar[str] = "claimed"

    participant: str
    payout: int


__all__ = ["Claimed", "MarketEvent", "MarketOpened", "PredictionPlaced", "RoundSettled"]
