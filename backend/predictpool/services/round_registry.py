from __future__ import annotations

from datetime import datetime

from loguru import logger

from predictpool.core.clock import ensure_utc
from predictpool.domain import MarketOpened, Outcome, Round
from predictpool.errors import InvalidCloseTime, InvalidPrice, RoundAlreadyExists, RoundNotFound

from .context import MarketContext


class RoundRegistry:
    """Opens rounds on behalf of the market admin and looks them up."""

    def __init__(self, context: MarketContext) -> None:
        self._context = context

    def open(self, round_id: int, asset: str, close_time: datetime) -> Round:
        context = self._context
        with context.unit_of_work() as events:
            config = context.require_config()
            context.authorizer.require_authorized(config.admin)

            close_time = ensure_utc(close_time)
            if close_time <= context.now():
                raise InvalidCloseTime(
                    f"Close time {close_time.isoformat()} is not in the future",
                    round_id=round_id,
                )
            if context.store.get_round(round_id, for_update=True) is not None:
                raise RoundAlreadyExists(f"Round {round_id} already exists", round_id=round_id)

            open_price = context.price_feed.get_price(asset)
            if open_price <= 0:
                raise InvalidPrice(
                    f"Price feed returned {open_price} for {asset}",
                    asset=asset,
                    price=open_price,
                )

            round_ = Round(
                round_id=round_id,
                asset=asset,
                open_price=open_price,
                close_time=close_time,
                outcome=Outcome.UP,
            )
            context.store.put_round(round_)
            events.append(
                MarketOpened(
                    round_id=round_id,
                    asset=asset,
                    open_price=open_price,
                    close_time=close_time,
                )
            )

        logger.info(
            "Opened round {} on {} at {} closing {}",
            round_id,
            asset,
            open_price,
            close_time.isoformat(),
        )
        return round_

    def get(self, round_id: int) -> Round:
        round_ = self._context.store.get_round(round_id)
        if round_ is None:
            raise RoundNotFound(f"Round {round_id} not found", round_id=round_id)
        return round_


__all__ = ["RoundRegistry"]
