"""Typed domain records shared by the engine, the stores and the API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from predictpool.errors import InvalidDirection

# Legacy integer codes accepted at the boundary (0 = up, 1 = down).
_DIRECTION_CODES = {0: "up", 1: "down"}


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Any) -> Direction:
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            value = _DIRECTION_CODES.get(value)
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidDirection(f"Unsupported direction: {value!r}")


class Outcome(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"

    def favours(self, direction: Direction) -> bool:
        return self.value == direction.value


@dataclass(frozen=True, slots=True)
class MarketConfig:
    """Settings fixed when the market is initialized."""

    admin: str
    token: str
    oracle: str
    escrow_account: str
    min_wager: int
    max_wager: int
    house_edge_bps: int


@dataclass(frozen=True, slots=True)
class Round:
    """One up/down window on an asset.

    ``close_price``, ``outcome``, ``is_push``, ``net_pool`` and
    ``winning_total`` are only meaningful once ``settled`` is true.
    """

    round_id: int
    asset: str
    open_price: int
    close_time: datetime
    close_price: int = 0
    total_up: int = 0
    total_down: int = 0
    settled: bool = False
    outcome: Outcome | None = None
    is_push: bool = False
    net_pool: int = 0
    winning_total: int = 0


@dataclass(frozen=True, slots=True)
class Bet:
    """A participant's single wager in a round; kept forever as a receipt."""

    round_id: int
    participant: str
    direction: Direction
    wager: int
    claimed: bool = False

    @property
    def key(self) -> tuple[int, str]:
        return (self.round_id, self.participant)
