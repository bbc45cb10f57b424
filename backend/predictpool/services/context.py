"""Shared wiring for the market services."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from predictpool.adapters import AuditSink, Authorizer, FundsTransfer, PriceFeed
from predictpool.core.clock import Clock, ensure_utc, utcnow
from predictpool.domain import MarketConfig, MarketEvent
from predictpool.errors import NotInitialized
from predictpool.repositories import LedgerStore


@dataclass(slots=True)
class MarketContext:
    store: LedgerStore
    price_feed: PriceFeed
    transfers: FundsTransfer
    authorizer: Authorizer
    audit: AuditSink
    clock: Clock = field(default=utcnow)

    def now(self) -> datetime:
        return ensure_utc(self.clock())

    def require_config(self) -> MarketConfig:
        config = self.store.get_config()
        if config is None:
            raise NotInitialized()
        return config

    @contextmanager
    def unit_of_work(self) -> Iterator[list[MarketEvent]]:
        """Run one operation all-or-nothing and publish its events after commit.

        Transfers are entered first so a failed store commit still unwinds
        balance changes made by the in-memory ledger.
        """

        events: list[MarketEvent] = []
        with ExitStack() as stack:
            stack.enter_context(self.transfers.atomic())
            stack.enter_context(self.store.atomic())
            yield events
        for event in events:
            self.audit.publish(event)


__all__ = ["MarketContext"]
