from __future__ import annotations

from collections.abc import Mapping


class StaticPriceFeed:
    """In-process price table; unknown assets report a price of zero."""

    def __init__(self, prices: Mapping[str, int] | None = None) -> None:
        self._prices: dict[str, int] = dict(prices or {})

    def set_price(self, asset: str, price: int) -> None:
        self._prices[asset] = price

    def get_price(self, asset: str) -> int:
        return self._prices.get(asset, 0)


__all__ = ["StaticPriceFeed"]
