from __future__ import annotations

from dataclasses import replace
from typing import Any

from loguru import logger

from predictpool.domain import Bet, Direction, PredictionPlaced
from predictpool.domain.arithmetic import checked_add
from predictpool.errors import (
    AlreadySettled,
    BetAlreadyPlaced,
    InvalidAmount,
    RoundClosed,
    RoundNotFound,
    WagerTooHigh,
    WagerTooLow,
)

from .context import MarketContext


class WagerLedger:
    """Accepts one escrowed wager per participant and round."""

    def __init__(self, context: MarketContext) -> None:
        self._context = context

    def place(self, participant: str, round_id: int, direction: Any, wager: int) -> Bet:
        """Escrow ``wager`` from ``participant`` on ``direction``.

        Every guard runs before the transfer, so a rejected wager leaves the
        round totals and all balances untouched.
        """

        context = self._context
        with context.unit_of_work() as events:
            config = context.require_config()
            context.authorizer.require_authorized(participant)

            side = Direction.parse(direction)
            if isinstance(wager, bool) or not isinstance(wager, int) or wager <= 0:
                raise InvalidAmount(f"Wager must be a positive integer, got {wager!r}")
            if wager < config.min_wager:
                raise WagerTooLow(
                    f"Wager {wager} is below the minimum of {config.min_wager}",
                    wager=wager,
                    min_wager=config.min_wager,
                )
            if wager > config.max_wager:
                raise WagerTooHigh(
                    f"Wager {wager} is above the maximum of {config.max_wager}",
                    wager=wager,
                    max_wager=config.max_wager,
                )

            round_ = context.store.get_round(round_id, for_update=True)
            if round_ is None:
                raise RoundNotFound(f"Round {round_id} not found", round_id=round_id)
            if round_.settled:
                raise AlreadySettled(f"Round {round_id} is already settled", round_id=round_id)
            if context.now() >= round_.close_time:
                raise RoundClosed(f"Round {round_id} closed for wagers", round_id=round_id)
            if context.store.get_bet(round_id, participant, for_update=True) is not None:
                raise BetAlreadyPlaced(
                    f"{participant} already has a bet in round {round_id}",
                    round_id=round_id,
                    participant=participant,
                )

            if side is Direction.UP:
                updated = replace(round_, total_up=checked_add(round_.total_up, wager))
            else:
                updated = replace(round_, total_down=checked_add(round_.total_down, wager))

            context.transfers.transfer(participant, config.escrow_account, wager)

            bet = Bet(round_id=round_id, participant=participant, direction=side, wager=wager)
            context.store.put_round(updated)
            context.store.put_bet(bet)
            events.append(
                PredictionPlaced(
                    round_id=round_id,
                    participant=participant,
                    direction=side,
                    wager=wager,
                )
            )

        logger.info(
            "Wager placed round={} participant={} direction={} wager={}",
            round_id,
            participant,
            side.value,
            wager,
        )
        return bet


__all__ = ["WagerLedger"]
