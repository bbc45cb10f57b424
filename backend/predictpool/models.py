from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .core.clock import utcnow
from .db import Base


class FixedPoint(TypeDecorator):
    """Store 128-bit token amounts as decimal strings on every backend."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class MarketConfigRecord(Base):
    __tablename__ = "market_config"

    config_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    admin: Mapped[str] = mapped_column(String, nullable=False)
    token: Mapped[str] = mapped_column(String, nullable=False)
    oracle: Mapped[str] = mapped_column(String, nullable=False)
    escrow_account: Mapped[str] = mapped_column(String, nullable=False)
    min_wager: Mapped[int] = mapped_column(FixedPoint, nullable=False)
    max_wager: Mapped[int] = mapped_column(FixedPoint, nullable=False)
    house_edge_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    initialized_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class RoundRecord(Base):
    __tablename__ = "rounds"
    __table_args__ = (Index("ix_rounds_settled_close_time", "settled", "close_time"),)

    round_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    asset: Mapped[str] = mapped_column(String, nullable=False)
    open_price: Mapped[int] = mapped_column(FixedPoint, nullable=False)
    close_price: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    close_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_up: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    total_down: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    outcome: Mapped[str | None] = mapped_column(String(8), nullable=True)
    is_push: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    net_pool: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    winning_total: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    retain_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    bets: Mapped[list["BetRecord"]] = relationship("BetRecord", back_populates="round")


class BetRecord(Base):
    __tablename__ = "bets"

    round_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("rounds.round_id"), primary_key=True, autoincrement=False
    )
    participant: Mapped[str] = mapped_column(String, primary_key=True)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    wager: Mapped[int] = mapped_column(FixedPoint, nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    placed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    retain_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    round: Mapped[RoundRecord] = relationship("RoundRecord", back_populates="bets")


class TokenBalanceRecord(Base):
    __tablename__ = "token_balances"

    token: Mapped[str] = mapped_column(String, primary_key=True)
    account: Mapped[str] = mapped_column(String, primary_key=True)
    balance: Mapped[int] = mapped_column(FixedPoint, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class MarketEventRecord(Base):
    __tablename__ = "market_events"

    event_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    round_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
