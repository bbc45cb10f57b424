from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from predictpool import models  # noqa: F401
from predictpool.adapters import (
    AllowAllAuthorizer,
    InMemoryAuditSink,
    InMemoryTokenLedger,
    StaticPriceFeed,
)
from predictpool.core.config import Settings
from predictpool.db import Base
from predictpool.domain import MarketConfig
from predictpool.repositories import InMemoryLedgerStore
from predictpool.services.context import MarketContext
from predictpool.services.market_service import PredictionMarket

ADMIN = "admin"
ESCROW = "escrow"
TOKEN = "XLM"
PLAYERS = ("alice", "bob", "carol", "dave")
STARTING_BALANCE = 5_000
BTC_OPEN = 50_000


def at(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


OPENED_AT = at(1_000)
CLOSE_TIME = at(2_000)
SETTLE_AT = at(3_000)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(OPENED_AT)


@pytest.fixture
def price_feed() -> StaticPriceFeed:
    return StaticPriceFeed({"BTC": BTC_OPEN})


@pytest.fixture
def token_ledger() -> InMemoryTokenLedger:
    ledger = InMemoryTokenLedger(TOKEN)
    for player in PLAYERS:
        ledger.mint(player, STARTING_BALANCE)
    return ledger


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def store(clock) -> InMemoryLedgerStore:
    return InMemoryLedgerStore(clock=clock)


@pytest.fixture
def market_config() -> MarketConfig:
    return MarketConfig(
        admin=ADMIN,
        token=TOKEN,
        oracle="static",
        escrow_account=ESCROW,
        min_wager=10,
        max_wager=10_000,
        house_edge_bps=500,
    )


@pytest.fixture
def uninitialized_market(store, price_feed, token_ledger, audit_sink, clock) -> PredictionMarket:
    context = MarketContext(
        store=store,
        price_feed=price_feed,
        transfers=token_ledger,
        authorizer=AllowAllAuthorizer(),
        audit=audit_sink,
        clock=clock,
    )
    return PredictionMarket(context)


@pytest.fixture
def market(uninitialized_market, market_config) -> PredictionMarket:
    uninitialized_market.initialize(market_config)
    return uninitialized_market


@pytest.fixture
def btc_round(market):
    return market.open_round(1, "BTC", CLOSE_TIME)


@pytest.fixture
def settle_at(clock, price_feed):
    """Move past the close time and publish ``close_price`` before settling."""

    def _move(close_price: int) -> None:
        price_feed.set_price("BTC", close_price)
        clock.set(SETTLE_AT)

    return _move


@pytest.fixture
def sql_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, expire_on_commit=False, future=True)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'predictpool.db'}",
        market_admin=ADMIN,
        escrow_account=ESCROW,
        static_prices={"BTC": BTC_OPEN},
        audit_sink="log",
    )
    monkeypatch.setattr("predictpool.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("predictpool.core.config.settings", settings)
    return settings
