"""Facade over the round registry, wager ledger, settlement engine and claims."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from oracle.client import PriceOracleClient
from predictpool.adapters import (
    AuditSink,
    Authorizer,
    LoggingAuditSink,
    PriceFeed,
    SqlAuditSink,
    SqlTokenLedger,
    StaticPriceFeed,
)
from predictpool.core.clock import Clock, utcnow
from predictpool.core.config import Settings, get_settings
from predictpool.domain import Bet, MarketConfig, Round
from predictpool.domain.arithmetic import BASIS_POINTS_DIVISOR
from predictpool.errors import AlreadyInitialized, InvalidConfig
from predictpool.repositories import RetentionPolicy, SqlLedgerStore

from .claims import ClaimProcessor
from .context import MarketContext
from .round_registry import RoundRegistry
from .settlement import SettlementEngine, SettlementReport
from .wager_ledger import WagerLedger

# Serialises every SQL-backed market built in this process.
_PROCESS_LOCK = RLock()


def validate_config(config: MarketConfig) -> None:
    for field_name in ("admin", "token", "escrow_account"):
        if not getattr(config, field_name):
            raise InvalidConfig(f"{field_name} must not be empty", field=field_name)
    for field_name in ("min_wager", "max_wager", "house_edge_bps"):
        value = getattr(config, field_name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConfig(f"{field_name} must be an integer", field=field_name)
    if config.min_wager <= 0:
        raise InvalidConfig("min_wager must be positive", min_wager=config.min_wager)
    if config.max_wager < config.min_wager:
        raise InvalidConfig(
            "max_wager must be at least min_wager",
            min_wager=config.min_wager,
            max_wager=config.max_wager,
        )
    if not 0 <= config.house_edge_bps <= BASIS_POINTS_DIVISOR:
        raise InvalidConfig(
            f"house_edge_bps must be within 0..{BASIS_POINTS_DIVISOR}",
            house_edge_bps=config.house_edge_bps,
        )


class PredictionMarket:
    """Entry point used by the API, the settlement sweep and tests.

    Each operation runs under a re-entrant lock and inside one unit of work.
    """

    def __init__(self, context: MarketContext, *, lock: Any | None = None) -> None:
        self._context = context
        self._lock = lock if lock is not None else RLock()
        self._rounds = RoundRegistry(context)
        self._wagers = WagerLedger(context)
        self._settlement = SettlementEngine(context)
        self._claims = ClaimProcessor(context)

    @property
    def context(self) -> MarketContext:
        return self._context

    def acting_as(self, authorizer: Authorizer) -> "PredictionMarket":
        """Return a view of the same market that authorizes through ``authorizer``."""
        return PredictionMarket(replace(self._context, authorizer=authorizer), lock=self._lock)

    # ------------------------------------------------------------------
    # Commands

    def initialize(self, config: MarketConfig) -> MarketConfig:
        context = self._context
        with self._lock, context.unit_of_work():
            if context.store.get_config() is not None:
                raise AlreadyInitialized()
            context.authorizer.require_authorized(config.admin)
            validate_config(config)
            context.store.set_config(config)
        logger.info(
            "Market initialized admin={} token={} wagers={}..{} fee_bps={}",
            config.admin,
            config.token,
            config.min_wager,
            config.max_wager,
            config.house_edge_bps,
        )
        return config

    def open_round(self, round_id: int, asset: str, close_time: datetime) -> Round:
        with self._lock:
            return self._rounds.open(round_id, asset, close_time)

    def place_prediction(self, participant: str, round_id: int, direction: Any, wager: int) -> Bet:
        with self._lock:
            return self._wagers.place(participant, round_id, direction, wager)

    def settle_round(self, round_id: int) -> SettlementReport:
        with self._lock:
            return self._settlement.settle(round_id)

    def claim(self, participant: str, round_id: int) -> int:
        with self._lock:
            return self._claims.claim(participant, round_id)

    # ------------------------------------------------------------------
    # Queries

    def get_config(self) -> MarketConfig:
        return self._context.require_config()

    def get_round(self, round_id: int) -> Round:
        return self._rounds.get(round_id)

    def get_bet(self, round_id: int, participant: str) -> Bet:
        return self._claims.get_bet(round_id, participant)

    def list_rounds(
        self,
        *,
        settled: bool | None = None,
        closed_before: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Round]:
        return self._context.store.list_rounds(
            settled=settled,
            closed_before=closed_before,
            limit=limit,
            offset=offset,
        )

    def list_bets(self, round_id: int) -> list[Bet]:
        self._rounds.get(round_id)
        return self._context.store.list_bets(round_id)


# ----------------------------------------------------------------------
# Builders


def market_config_from_settings(settings: Settings | None = None) -> MarketConfig:
    settings = settings or get_settings()
    return MarketConfig(
        admin=settings.market_admin,
        token=settings.market_token,
        oracle=settings.market_oracle,
        escrow_account=settings.escrow_account,
        min_wager=settings.min_wager,
        max_wager=settings.max_wager,
        house_edge_bps=settings.house_edge_bps,
    )


def build_price_feed(settings: Settings) -> PriceFeed:
    if settings.price_feed_mode == "http":
        return PriceOracleClient(
            base_url=str(settings.price_feed_base_url),
            timeout=settings.price_feed_timeout_seconds,
        )
    return StaticPriceFeed(settings.static_prices)


_price_feed: PriceFeed | None = None


def get_price_feed() -> PriceFeed:
    """Process-wide price feed built from the current settings."""
    global _price_feed
    if _price_feed is None:
        _price_feed = build_price_feed(get_settings())
    return _price_feed


def _build_audit_sink(session: Session, settings: Settings) -> AuditSink:
    if settings.audit_sink == "log":
        return LoggingAuditSink()
    return SqlAuditSink(session)


def build_sql_market(
    session: Session,
    *,
    authorizer: Authorizer,
    settings: Settings | None = None,
    price_feed: PriceFeed | None = None,
    clock: Clock = utcnow,
) -> PredictionMarket:
    """Wire a market whose ledger, balances and audit trail share ``session``."""

    settings = settings or get_settings()
    store = SqlLedgerStore(
        session,
        retention=RetentionPolicy.from_days(settings.retention_days),
        clock=clock,
    )
    config = store.get_config()
    token = config.token if config is not None else settings.market_token
    context = MarketContext(
        store=store,
        price_feed=price_feed or get_price_feed(),
        transfers=SqlTokenLedger(session, token),
        authorizer=authorizer,
        audit=_build_audit_sink(session, settings),
        clock=clock,
    )
    return PredictionMarket(context, lock=_PROCESS_LOCK)


__all__ = [
    "PredictionMarket",
    "build_price_feed",
    "build_sql_market",
    "get_price_feed",
    "market_config_from_settings",
    "validate_config",
]
