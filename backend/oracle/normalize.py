from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as date_parser

from predictpool.errors import InvalidPrice


@dataclass(frozen=True, slots=True)
class PriceQuote:
    asset: str
    price: int
    as_of: datetime | None = None


def _unwrap(payload: Any) -> dict[str, Any]:
    """Accept ``{"price": ...}`` as well as ``{"data": {"price": ...}}`` envelopes."""
    if not isinstance(payload, dict):
        return {}
    for key in ("data", "result", "quote"):
        nested = payload.get(key)
        if isinstance(nested, dict):
            return nested
    return payload


def _to_fixed_point(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite() or parsed != parsed.to_integral_value():
        return None
    return int(parsed)


def _parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_quote(asset: str, payload: Any) -> PriceQuote:
    """Convert an oracle response into a fixed-point quote.

    Prices must already be integers in the feed's fixed-point scale; fractional
    or missing values raise ``InvalidPrice``.
    """
    body = _unwrap(payload)
    price = _to_fixed_point(body.get("price", body.get("value")))
    if price is None:
        raise InvalidPrice(f"Oracle returned no usable price for {asset}", asset=asset)
    return PriceQuote(
        asset=str(body.get("asset") or asset),
        price=price,
        as_of=_parse_timestamp(body.get("timestamp", body.get("as_of"))),
    )


__all__ = ["PriceQuote", "normalize_quote"]
