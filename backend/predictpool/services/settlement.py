"""Outcome determination and fee-adjusted pool computation."""

from __future__ import annotations

from dataclasses import dataclass, replace

from loguru import logger

from predictpool.domain import Outcome, Round, RoundSettled
from predictpool.domain.arithmetic import checked_add, checked_sub, fee_for
from predictpool.errors import AlreadySettled, RoundNotClosed, RoundNotFound

from .context import MarketContext


@dataclass(frozen=True, slots=True)
class SettlementResult:
    outcome: Outcome
    is_push: bool
    total_pool: int
    fee: int
    net_pool: int
    winning_total: int


@dataclass(frozen=True, slots=True)
class SettlementReport:
    """A settled round together with the pool figures observers care about."""

    round: Round
    total_pool: int
    fee: int


def determine_outcome(open_price: int, close_price: int) -> Outcome:
    if close_price > open_price:
        return Outcome.UP
    if close_price < open_price:
        return Outcome.DOWN
    return Outcome.FLAT


def compute_settlement(
    open_price: int,
    close_price: int,
    total_up: int,
    total_down: int,
    house_edge_bps: int,
) -> SettlementResult:
    """Derive the frozen settlement figures for a round.

    A flat market, an empty pool or a one-sided pool is a push: nobody pays a
    fee and every wager is refunded. Otherwise the fee is taken once from the
    whole pool and the remainder is shared by the winning side.
    """

    total_pool = checked_add(total_up, total_down)
    outcome = determine_outcome(open_price, close_price)
    is_push = outcome is Outcome.FLAT or total_pool == 0 or total_up == 0 or total_down == 0

    if is_push:
        return SettlementResult(
            outcome=outcome,
            is_push=True,
            total_pool=total_pool,
            fee=0,
            net_pool=0,
            winning_total=0,
        )

    fee = fee_for(total_pool, house_edge_bps)
    return SettlementResult(
        outcome=outcome,
        is_push=False,
        total_pool=total_pool,
        fee=fee,
        net_pool=checked_sub(total_pool, fee),
        winning_total=total_up if outcome is Outcome.UP else total_down,
    )


class SettlementEngine:
    """Freezes a round's outcome once its close time has passed."""

    def __init__(self, context: MarketContext) -> None:
        self._context = context

    def settle(self, round_id: int) -> SettlementReport:
        context = self._context
        with context.unit_of_work() as events:
            config = context.require_config()

            round_ = context.store.get_round(round_id, for_update=True)
            if round_ is None:
                raise RoundNotFound(f"Round {round_id} not found", round_id=round_id)
            if round_.settled:
                raise AlreadySettled(f"Round {round_id} is already settled", round_id=round_id)
            if context.now() < round_.close_time:
                raise RoundNotClosed(
                    f"Round {round_id} closes at {round_.close_time.isoformat()}",
                    round_id=round_id,
                )

            close_price = context.price_feed.get_price(round_.asset)
            result = compute_settlement(
                round_.open_price,
                close_price,
                round_.total_up,
                round_.total_down,
                config.house_edge_bps,
            )
            settled = replace(
                round_,
                close_price=close_price,
                settled=True,
                outcome=result.outcome,
                is_push=result.is_push,
                net_pool=result.net_pool,
                winning_total=result.winning_total,
            )
            context.store.put_round(settled)
            events.append(
                RoundSettled(
                    round_id=round_id,
                    close_price=close_price,
                    outcome=result.outcome,
                    is_push=result.is_push,
                    net_pool=result.net_pool,
                )
            )

        logger.info(
            "Settled round {} outcome={} push={} pool={} fee={} net={}",
            round_id,
            result.outcome.value,
            result.is_push,
            result.total_pool,
            result.fee,
            result.net_pool,
        )
        return SettlementReport(round=settled, total_pool=result.total_pool, fee=result.fee)


__all__ = [
    "SettlementEngine",
    "SettlementReport",
    "SettlementResult",
    "compute_settlement",
    "determine_outcome",
]
