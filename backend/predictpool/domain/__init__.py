"""Domain records, notifications and checked arithmetic for the prediction pool."""

from .events import Claimed, MarketEvent, MarketOpened, PredictionPlaced, RoundSettled
from .models import Bet, Direction, MarketConfig, Outcome, Round

__all__ = [
    "Bet",
    "Claimed",
    "Direction",
    "MarketConfig",
    "MarketEvent",
    "MarketOpened",
    "Outcome",
    "PredictionPlaced",
    "Round",
    "RoundSettled",
]
