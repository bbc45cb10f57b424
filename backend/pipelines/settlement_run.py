"""Standalone job that settles every expired round still awaiting settlement."""

from __future__ import annotations

import argparse
import json
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Sequence

from loguru import logger

from predictpool.adapters import AllowAllAuthorizer
from predictpool.core.config import Settings, get_settings
from predictpool.db import SessionLocal, init_db
from predictpool.domain import Round
from predictpool.errors import MarketError
from predictpool.services.market_service import PredictionMarket, build_sql_market

MarketProvider = Callable[[], AbstractContextManager[PredictionMarket]]


@dataclass(slots=True)
class SettlementSweepSummary:
    checked_rounds: int = 0
    settled_rounds: int = 0
    pushes: int = 0
    fees_collected: int = 0
    pending_rounds: list[int] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked_rounds": self.checked_rounds,
            "settled_rounds": self.settled_rounds,
            "pushes": self.pushes,
            "fees_collected": self.fees_collected,
            "pending_rounds": self.pending_rounds,
            "failures": self.failures,
        }


class SettlementSweep:
    """Act as the permissionless keeper: settle rounds once their window closes."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        market_provider: MarketProvider | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._market_provider = market_provider or self._sql_market

    @contextmanager
    def _sql_market(self) -> Iterator[PredictionMarket]:
        init_db()
        session = SessionLocal()
        try:
            yield build_sql_market(session, authorizer=AllowAllAuthorizer(), settings=self.settings)
        finally:
            session.close()

    def run(
        self,
        *,
        limit: int | None = None,
        batch_size: int | None = None,
        dry_run: bool = False,
    ) -> SettlementSweepSummary:
        summary = SettlementSweepSummary()
        batch_size = batch_size or self.settings.settlement_batch_size

        with self._market_provider() as market:
            now = market.context.now()
            candidates = market.list_rounds(settled=False, closed_before=now, limit=limit)
        if not candidates:
            logger.info("No expired rounds awaiting settlement")
            return summary

        logger.info(
            "Settlement sweep evaluating {} rounds: batch_size={}, dry_run={}",
            len(candidates),
            batch_size,
            dry_run,
        )
        if dry_run:
            summary.checked_rounds = len(candidates)
            summary.pending_rounds = [round_.round_id for round_ in candidates]
        else:
            # One market, and so one session, per batch.
            for index, chunk in enumerate(_chunked(candidates, batch_size), start=1):
                logger.info("Settling batch {} ({} rounds)", index, len(chunk))
                with self._market_provider() as market:
                    for round_ in chunk:
                        summary.checked_rounds += 1
                        self._settle(market, round_, summary)

        logger.info(
            "Settlement sweep finished: checked={}, settled={}, pushes={}, failures={}",
            summary.checked_rounds,
            summary.settled_rounds,
            summary.pushes,
            len(summary.failures),
        )
        return summary

    def _settle(
        self,
        market: PredictionMarket,
        round_: Round,
        summary: SettlementSweepSummary,
    ) -> None:
        try:
            report = market.settle_round(round_.round_id)
        except MarketError as exc:
            logger.warning("Round {} was not settled: {} ({})", round_.round_id, exc.name, exc)
            summary.failures.append({"round_id": round_.round_id, **exc.to_dict()})
            return
        except Exception as exc:
            logger.exception("Unexpected failure settling round {}", round_.round_id)
            summary.failures.append(
                {"round_id": round_.round_id, "error": type(exc).__name__, "detail": str(exc)}
            )
            return

        summary.settled_rounds += 1
        summary.fees_collected += report.fee
        if report.round.is_push:
            summary.pushes += 1


def _chunked(items: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    if size <= 0:
        yield items
        return
    for index in range(0, len(items), size):
        yield items[index : index + size]


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Settle every round whose close time has passed",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of rounds to settle")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Override the number of rounds settled per batch",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the rounds that would be settled without touching them",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args(argv)


def _write_summary(summary: SettlementSweepSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), default=str, indent=2))
    logger.info("Settlement summary written to {}", path)


def main(
    argv: Sequence[str] | None = None,
    *,
    market_provider: MarketProvider | None = None,
) -> SettlementSweepSummary:
    args = _parse_args(argv)
    sweep = SettlementSweep(get_settings(), market_provider=market_provider)
    summary = sweep.run(limit=args.limit, batch_size=args.batch_size, dry_run=args.dry_run)

    if args.summary_path:
        _write_summary(summary, args.summary_path)
    return summary


if __name__ == "__main__":
    main()
