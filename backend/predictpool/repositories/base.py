"""Storage contract used by the settlement engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timedelta

from predictpool.domain import Bet, MarketConfig, Round


@dataclass(frozen=True, slots=True)
class RetentionPolicy:
    """Extend a record's retention window every time it is written.

    ``ttl=None`` keeps records without an expiry stamp.
    """

    ttl: timedelta | None = timedelta(days=30)

    @classmethod
    def from_days(cls, days: int | None) -> RetentionPolicy:
        return cls(ttl=timedelta(days=days) if days else None)

    def retain_until(self, now: datetime) -> datetime | None:
        if self.ttl is None:
            return None
        return now + self.ttl


class LedgerStore(ABC):
    """Config slot plus round and bet maps behind one transactional boundary.

    ``atomic()`` wraps a unit of work: every write made inside it is kept on
    success and discarded if the block raises. Nested calls join the outer
    unit.
    """

    # ------------------------------------------------------------------
    # Transactions

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Configuration

    @abstractmethod
    def get_config(self) -> MarketConfig | None:
        raise NotImplementedError

    @abstractmethod
    def set_config(self, config: MarketConfig) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Rounds

    @abstractmethod
    def get_round(self, round_id: int, *, for_update: bool = False) -> Round | None:
        raise NotImplementedError

    @abstractmethod
    def put_round(self, round_: Round) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_rounds(
        self,
        *,
        settled: bool | None = None,
        closed_before: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Round]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Bets

    @abstractmethod
    def get_bet(self, round_id: int, participant: str, *, for_update: bool = False) -> Bet | None:
        raise NotImplementedError

    @abstractmethod
    def put_bet(self, bet: Bet) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_bets(self, round_id: int) -> list[Bet]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Retention

    @abstractmethod
    def round_retained_until(self, round_id: int) -> datetime | None:
        raise NotImplementedError

    @abstractmethod
    def bet_retained_until(self, round_id: int, participant: str) -> datetime | None:
        raise NotImplementedError


__all__ = ["LedgerStore", "RetentionPolicy"]
