from __future__ import annotations

from urllib.parse import quote

import httpx
from loguru import logger

from predictpool.core.config import settings
from predictpool.errors import PriceFeedUnavailable

from .normalize import PriceQuote, normalize_quote


class PriceOracleClient:
    """Thin wrapper around an HTTP price oracle serving ``GET /prices/{asset}``."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        prices_path: str = "/prices",
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        resolved_base = base_url or settings.price_feed_base_url
        if not resolved_base:
            raise ValueError("PriceOracleClient requires a base_url")
        self.base_url = str(resolved_base)
        self.prices_path = prices_path.rstrip("/")
        self.timeout = timeout or settings.price_feed_timeout_seconds
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    def fetch_quote(self, asset: str) -> PriceQuote:
        path = f"{self.prices_path}/{quote(asset, safe='')}"
        logger.info("Price oracle GET {}", path)
        try:
            response = self.client.get(path)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Price oracle request for {} failed: {}", asset, exc)
            raise PriceFeedUnavailable(
                f"Price oracle request for {asset} failed: {exc}", asset=asset
            ) from exc
        return normalize_quote(asset, response.json())

    def get_price(self, asset: str) -> int:
        return self.fetch_quote(asset).price

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "PriceOracleClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["PriceOracleClient"]
