from __future__ import annotations

from loguru import logger
from sqlalchemy.orm import Session

from predictpool.domain import MarketEvent
from predictpool.models import MarketEventRecord


class InMemoryAuditSink:
    def __init__(self) -> None:
        self.events: list[MarketEvent] = []

    def publish(self, event: MarketEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]


class LoggingAuditSink:
    def publish(self, event: MarketEvent) -> None:
        logger.bind(market_event=event.name, round_id=event.round_id).info(
            "Market event {} {}", event.name, event.to_payload()
        )


class SqlAuditSink:
    """Append notifications to ``market_events`` in their own transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def publish(self, event: MarketEvent) -> None:
        self._session.add(
            MarketEventRecord(
                name=event.name,
                round_id=event.round_id,
                payload=event.to_payload(),
            )
        )
        self._session.commit()


__all__ = ["InMemoryAuditSink", "LoggingAuditSink", "SqlAuditSink"]
