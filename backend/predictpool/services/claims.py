from __future__ import annotations

from dataclasses import replace

from loguru import logger

from predictpool.domain import Bet, Claimed, Round
from predictpool.domain.arithmetic import checked_div, checked_mul
from predictpool.errors import AlreadyClaimed, BetNotFound, NoPayout, NotSettled, RoundNotFound

from .context import MarketContext


def compute_payout(round_: Round, bet: Bet) -> int:
    """Refund on a push, pro-rata share of the net pool for winners, else 0."""

    if round_.is_push:
        return bet.wager
    if round_.outcome is not None and round_.outcome.favours(bet.direction):
        return checked_div(checked_mul(round_.net_pool, bet.wager), round_.winning_total)
    return 0


class ClaimProcessor:
    """Pays each settled bet out of escrow at most once."""

    def __init__(self, context: MarketContext) -> None:
        self._context = context

    def claim(self, participant: str, round_id: int) -> int:
        context = self._context
        with context.unit_of_work() as events:
            config = context.require_config()
            context.authorizer.require_authorized(participant)

            round_ = context.store.get_round(round_id)
            if round_ is None:
                raise RoundNotFound(f"Round {round_id} not found", round_id=round_id)
            if not round_.settled:
                raise NotSettled(f"Round {round_id} is not settled", round_id=round_id)

            bet = context.store.get_bet(round_id, participant, for_update=True)
            if bet is None:
                raise BetNotFound(
                    f"No bet from {participant} in round {round_id}",
                    round_id=round_id,
                    participant=participant,
                )
            if bet.claimed:
                raise AlreadyClaimed(
                    f"{participant} already claimed round {round_id}",
                    round_id=round_id,
                    participant=participant,
                )

            payout = compute_payout(round_, bet)
            if payout == 0:
                raise NoPayout(
                    f"{participant} has nothing to claim in round {round_id}",
                    round_id=round_id,
                    participant=participant,
                )

            # The receipt is marked before funds leave escrow.
            context.store.put_bet(replace(bet, claimed=True))
            context.transfers.transfer(config.escrow_account, participant, payout)
            events.append(Claimed(round_id=round_id, participant=participant, payout=payout))

        logger.info("Claim paid round={} participant={} payout={}", round_id, participant, payout)
        return payout

    def get_bet(self, round_id: int, participant: str) -> Bet:
        bet = self._context.store.get_bet(round_id, participant)
        if bet is None:
            raise BetNotFound(
                f"No bet from {participant} in round {round_id}",
                round_id=round_id,
                participant=participant,
            )
        return bet


__all__ = ["ClaimProcessor", "compute_payout"]
