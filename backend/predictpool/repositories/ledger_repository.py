"""SQLAlchemy implementation of the ledger store."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from predictpool.core.clock import Clock, ensure_utc, utcnow
from predictpool.domain import Bet, Direction, MarketConfig, Outcome, Round
from predictpool.models import BetRecord, MarketConfigRecord, RoundRecord

from .base import LedgerStore, RetentionPolicy

_CONFIG_ID = 1


class SqlLedgerStore(LedgerStore):
    """Encapsulate config, round and bet persistence over one session."""

    def __init__(
        self,
        session: Session,
        *,
        retention: RetentionPolicy | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._retention = retention or RetentionPolicy()
        self._clock = clock
        self._depth = 0

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            yield
            return

        self._depth += 1
        try:
            yield
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        finally:
            self._depth -= 1

    # ------------------------------------------------------------------
    # Configuration

    def get_config(self) -> MarketConfig | None:
        record = self._session.get(MarketConfigRecord, _CONFIG_ID)
        if record is None:
            return None
        return MarketConfig(
            admin=record.admin,
            token=record.token,
            oracle=record.oracle,
            escrow_account=record.escrow_account,
            min_wager=record.min_wager,
            max_wager=record.max_wager,
            house_edge_bps=record.house_edge_bps,
        )

    def set_config(self, config: MarketConfig) -> None:
        record = self._session.get(MarketConfigRecord, _CONFIG_ID)
        if record is None:
            record = MarketConfigRecord(config_id=_CONFIG_ID)
            self._session.add(record)

        record.admin = config.admin
        record.token = config.token
        record.oracle = config.oracle
        record.escrow_account = config.escrow_account
        record.min_wager = config.min_wager
        record.max_wager = config.max_wager
        record.house_edge_bps = config.house_edge_bps
        self._session.flush()

    # ------------------------------------------------------------------
    # Rounds

    def get_round(self, round_id: int, *, for_update: bool = False) -> Round | None:
        record = self._load_round(round_id, for_update=for_update)
        if record is None:
            return None
        return _round_from_record(record)

    def put_round(self, round_: Round) -> None:
        record = self._session.get(RoundRecord, round_.round_id)
        if record is None:
            record = RoundRecord(round_id=round_.round_id)
            self._session.add(record)

        record.asset = round_.asset
        record.open_price = round_.open_price
        record.close_price = round_.close_price
        record.close_time = ensure_utc(round_.close_time)
        record.total_up = round_.total_up
        record.total_down = round_.total_down
        record.settled = round_.settled
        record.outcome = round_.outcome.value if round_.outcome is not None else None
        record.is_push = round_.is_push
        record.net_pool = round_.net_pool
        record.winning_total = round_.winning_total
        record.retain_until = self._retention.retain_until(self._clock())
        self._session.flush()

    def list_rounds(
        self,
        *,
        settled: bool | None = None,
        closed_before: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Round]:
        filters: list[Any] = []
        if settled is not None:
            filters.append(RoundRecord.settled.is_(settled))
        if closed_before is not None:
            filters.append(RoundRecord.close_time <= ensure_utc(closed_before))

        query = (
            select(RoundRecord)
            .where(*filters)
            .order_by(asc(RoundRecord.close_time), asc(RoundRecord.round_id))
            .offset(offset)
        )
        if limit:
            query = query.limit(limit)
        records = self._session.execute(query).scalars().all()
        return [_round_from_record(record) for record in records]

    # ------------------------------------------------------------------
    # Bets

    def get_bet(self, round_id: int, participant: str, *, for_update: bool = False) -> Bet | None:
        record = self._load_bet(round_id, participant, for_update=for_update)
        if record is None:
            return None
        return _bet_from_record(record)

    def put_bet(self, bet: Bet) -> None:
        record = self._session.get(BetRecord, (bet.round_id, bet.participant))
        if record is None:
            record = BetRecord(round_id=bet.round_id, participant=bet.participant)
            self._session.add(record)

        record.direction = bet.direction.value
        record.wager = bet.wager
        record.claimed = bet.claimed
        record.retain_until = self._retention.retain_until(self._clock())
        self._session.flush()

    def list_bets(self, round_id: int) -> list[Bet]:
        query = (
            select(BetRecord)
            .where(BetRecord.round_id == round_id)
            .order_by(asc(BetRecord.placed_at), asc(BetRecord.participant))
        )
        return [_bet_from_record(record) for record in self._session.execute(query).scalars()]

    # ------------------------------------------------------------------
    # Retention

    def round_retained_until(self, round_id: int) -> datetime | None:
        record = self._session.get(RoundRecord, round_id)
        if record is None or record.retain_until is None:
            return None
        return ensure_utc(record.retain_until)

    def bet_retained_until(self, round_id: int, participant: str) -> datetime | None:
        record = self._session.get(BetRecord, (round_id, participant))
        if record is None or record.retain_until is None:
            return None
        return ensure_utc(record.retain_until)

    # ------------------------------------------------------------------
    # Helpers

    def _load_round(self, round_id: int, *, for_update: bool) -> RoundRecord | None:
        if not for_update:
            return self._session.get(RoundRecord, round_id)
        query = (
            select(RoundRecord)
            .where(RoundRecord.round_id == round_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(query).scalar_one_or_none()

    def _load_bet(self, round_id: int, participant: str, *, for_update: bool) -> BetRecord | None:
        if not for_update:
            return self._session.get(BetRecord, (round_id, participant))
        query = (
            select(BetRecord)
            .where(BetRecord.round_id == round_id, BetRecord.participant == participant)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(query).scalar_one_or_none()


def _round_from_record(record: RoundRecord) -> Round:
    return Round(
        round_id=record.round_id,
        asset=record.asset,
        open_price=record.open_price,
        close_time=ensure_utc(record.close_time),
        close_price=record.close_price,
        total_up=record.total_up,
        total_down=record.total_down,
        settled=bool(record.settled),
        outcome=Outcome(record.outcome) if record.outcome else None,
        is_push=bool(record.is_push),
        net_pool=record.net_pool,
        winning_total=record.winning_total,
    )


def _bet_from_record(record: BetRecord) -> Bet:
    return Bet(
        round_id=record.round_id,
        participant=record.participant,
        direction=Direction(record.direction),
        wager=record.wager,
        claimed=bool(record.claimed),
    )


__all__ = ["SqlLedgerStore"]
