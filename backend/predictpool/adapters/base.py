"""Contracts for the collaborators the settlement engine depends on."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from predictpool.domain import MarketEvent


class PriceFeed(Protocol):
    """Source of truth for asset prices at round open and close."""

    def get_price(self, asset: str) -> int:
        """Return the current fixed-point price for ``asset``."""


class FundsTransfer(Protocol):
    """Moves token amounts between accounts."""

    token: str

    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` or raise :class:`InsufficientBalance`."""

    def atomic(self) -> AbstractContextManager[None]:
        """Undo transfers made inside the block if it raises."""


class Authorizer(Protocol):
    """Confirms that an identity authorized the current call."""

    def require_authorized(self, identity: str) -> None:
        """Raise :class:`NotAuthorized` unless ``identity`` approved this call."""


class AuditSink(Protocol):
    """Append-only destination for committed market notifications."""

    def publish(self, event: MarketEvent) -> None:
        """Record ``event``; called only after the owning operation committed."""


__all__ = ["AuditSink", "Authorizer", "FundsTransfer", "PriceFeed"]
