"""Error taxonomy for the settlement engine.

Each error carries a stable numeric ``code`` and an ``ErrorCategory`` so the
HTTP layer and batch jobs can report failures without string matching.
Every guard in the engine raises before any state is touched, so a caller
may retry a failed operation without risk of duplicated effects.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    STATE = "state"
    ARITHMETIC = "arithmetic"


class MarketError(Exception):
    """Base class for every failure surfaced by the prediction market."""

    code: ClassVar[int] = 0
    category: ClassVar[ErrorCategory] = ErrorCategory.STATE
    default_message: ClassVar[str] = "Prediction market error"

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.context = context
        super().__init__(message or self.default_message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.name,
            "code": self.code,
            "category": self.category.value,
            "detail": str(self),
        }


class ConfigurationError(MarketError):
    category = ErrorCategory.CONFIGURATION


class AuthorizationError(MarketError):
    category = ErrorCategory.AUTHORIZATION


class ValidationError(MarketError):
    category = ErrorCategory.VALIDATION


class StateError(MarketError):
    category = ErrorCategory.STATE


class NotFoundError(StateError):
    """State error raised when a looked-up record does not exist."""


class MarketArithmeticError(MarketError):
    category = ErrorCategory.ARITHMETIC


# ----------------------------------------------------------------------
# Configuration


class AlreadyInitialized(ConfigurationError):
    code = 1
    default_message = "Market is already initialized"


class NotInitialized(ConfigurationError):
    code = 2
    default_message = "Market has not been initialized"


class InvalidConfig(ConfigurationError):
    code = 22
    default_message = "Market configuration is invalid"


class PriceFeedUnavailable(ConfigurationError):
    code = 23
    default_message = "Price feed could not be reached"


# ----------------------------------------------------------------------
# Authorization


class NotAuthorized(AuthorizationError):
    code = 3
    default_message = "Caller is not authorized for this operation"


# ----------------------------------------------------------------------
# Validation


class InvalidAmount(ValidationError):
    code = 4
    default_message = "Wager must be a positive integer amount"


class InvalidDirection(ValidationError):
    code = 5
    default_message = "Direction must be 'up' or 'down'"


class WagerTooLow(ValidationError):
    code = 16
    default_message = "Wager is below the configured minimum"


class WagerTooHigh(ValidationError):
    code = 17
    default_message = "Wager is above the configured maximum"


class InvalidCloseTime(ValidationError):
    code = 19
    default_message = "Close time must be in the future"


class InvalidPrice(ValidationError):
    code = 20
    default_message = "Price feed returned a non-positive price"


# ----------------------------------------------------------------------
# State


class RoundAlreadyExists(StateError):
    code = 6
    default_message = "Round already exists"


class RoundNotFound(NotFoundError):
    code = 7
    default_message = "Round not found"


class AlreadySettled(StateError):
    code = 8
    default_message = "Round is already settled"


class NotSettled(StateError):
    code = 9
    default_message = "Round is not settled yet"


class RoundNotClosed(StateError):
    code = 10
    default_message = "Round has not reached its close time"


class RoundClosed(StateError):
    code = 11
    default_message = "Round is closed for new wagers"


class BetAlreadyPlaced(StateError):
    code = 12
    default_message = "Participant already has a bet in this round"


class BetNotFound(NotFoundError):
    code = 13
    default_message = "Bet not found"


class AlreadyClaimed(StateError):
    code = 14
    default_message = "Bet has already been claimed"


class NoPayout(StateError):
    code = 15
    default_message = "Bet has no payout"


class InsufficientBalance(StateError):
    code = 21
    default_message = "Source account has insufficient balance"


# ----------------------------------------------------------------------
# Arithmetic


class Overflow(MarketArithmeticError):
    code = 18
    default_message = "Arithmetic overflow"


__all__ = [
    "AlreadyClaimed",
    "AlreadyInitialized",
    "AlreadySettled",
    "AuthorizationError",
    "BetAlreadyPlaced",
    "BetNotFound",
    "ConfigurationError",
    "ErrorCategory",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidCloseTime",
    "InvalidConfig",
    "InvalidDirection",
    "InvalidPrice",
    "MarketArithmeticError",
    "MarketError",
    "NoPayout",
    "NotAuthorized",
    "NotFoundError",
    "NotInitialized",
    "NotSettled",
    "Overflow",
    "PriceFeedUnavailable",
    "RoundAlreadyExists",
    "RoundClosed",
    "RoundNotClosed",
    "RoundNotFound",
    "StateError",
    "ValidationError",
    "WagerTooHigh",
    "WagerTooLow",
]
