"""Dictionary-backed ledger store for tests and single-process runs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from predictpool.core.clock import Clock, utcnow
from predictpool.domain import Bet, MarketConfig, Round

from .base import LedgerStore, RetentionPolicy


class InMemoryLedgerStore(LedgerStore):
    """Keep frozen records in plain dicts and snapshot them per unit of work."""

    def __init__(
        self,
        *,
        retention: RetentionPolicy | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._retention = retention or RetentionPolicy()
        self._clock = clock
        self._config: MarketConfig | None = None
        self._rounds: dict[int, Round] = {}
        self._bets: dict[tuple[int, str], Bet] = {}
        self._round_retention: dict[int, datetime | None] = {}
        self._bet_retention: dict[tuple[int, str], datetime | None] = {}
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            yield
            return

        snapshot = (
            self._config,
            dict(self._rounds),
            dict(self._bets),
            dict(self._round_retention),
            dict(self._bet_retention),
        )
        self._depth += 1
        try:
            yield
        except Exception:
            (
                self._config,
                self._rounds,
                self._bets,
                self._round_retention,
                self._bet_retention,
            ) = snapshot
            raise
        finally:
            self._depth -= 1

    def get_config(self) -> MarketConfig | None:
        return self._config

    def set_config(self, config: MarketConfig) -> None:
        self._config = config

    def get_round(self, round_id: int, *, for_update: bool = False) -> Round | None:
        return self._rounds.get(round_id)

    def put_round(self, round_: Round) -> None:
        self._rounds[round_.round_id] = round_
        self._round_retention[round_.round_id] = self._retention.retain_until(self._clock())

    def list_rounds(
        self,
        *,
        settled: bool | None = None,
        closed_before: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Round]:
        rounds = [
            round_
            for round_ in self._rounds.values()
            if (settled is None or round_.settled is settled)
            and (closed_before is None or round_.close_time <= closed_before)
        ]
        rounds.sort(key=lambda round_: (round_.close_time, round_.round_id))
        rounds = rounds[offset:]
        if limit:
            rounds = rounds[:limit]
        return rounds

    def get_bet(self, round_id: int, participant: str, *, for_update: bool = False) -> Bet | None:
        return self._bets.get((round_id, participant))

    def put_bet(self, bet: Bet) -> None:
        self._bets[bet.key] = bet
        self._bet_retention[bet.key] = self._retention.retain_until(self._clock())

    def list_bets(self, round_id: int) -> list[Bet]:
        return [bet for key, bet in self._bets.items() if key[0] == round_id]

    def round_retained_until(self, round_id: int) -> datetime | None:
        return self._round_retention.get(round_id)

    def bet_retained_until(self, round_id: int, participant: str) -> datetime | None:
        return self._bet_retention.get((round_id, participant))


__all__ = ["InMemoryLedgerStore"]
