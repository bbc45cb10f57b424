from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("target_session_attrs", "read-write")
    new_query = urlencode(query_params, doseq=True)

    return urlunparse(parsed._replace(scheme=scheme, query=new_query))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///./data/predictpool.db",
        description="SQLAlchemy compatible database URL",
    )

    market_admin: str = Field(
        default="admin",
        description="Identity allowed to open rounds when bootstrapping the market",
    )
    market_token: str = Field(
        default="XLM",
        description="Token symbol escrowed by the market",
    )
    market_oracle: str = Field(
        default="static",
        description="Identifier of the price oracle recorded in the market configuration",
    )
    escrow_account: str = Field(
        default="predictpool-escrow",
        description="Account that holds wagers between placement and payout",
    )
    min_wager: int = Field(default=10, description="Smallest accepted wager", gt=0)
    max_wager: int = Field(default=10_000, description="Largest accepted wager", gt=0)
    house_edge_bps: int = Field(
        default=500,
        description="House fee in basis points taken once from each decisive pool",
        ge=0,
        le=10_000,
    )

    price_feed_mode: str = Field(
        default="static",
        description="Price feed backend (static|http)",
    )
    price_feed_base_url: AnyUrl | str | None = Field(
        default=None,
        description="Base URL of the HTTP price oracle when price_feed_mode=http",
    )
    price_feed_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout applied to price oracle requests",
        gt=0,
    )
    static_prices: dict[str, int] | str = Field(
        default_factory=dict,
        description="Prices served by the static feed, as a mapping or ASSET=PRICE pairs",
    )

    retention_days: int | None = Field(
        default=30,
        description="Retention extended on every round/bet write (blank disables)",
        ge=1,
    )
    settlement_batch_size: int = Field(
        default=50,
        description="Number of expired rounds settled per batch by the settlement sweep",
        ge=1,
    )
    audit_sink: str = Field(
        default="database",
        description="Where market notifications are recorded (database|log)",
    )

    @field_validator("price_feed_mode", "audit_sink")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("price_feed_mode")
    @classmethod
    def _validate_price_feed_mode(cls, value: str) -> str:
        if value not in {"static", "http"}:
            raise ValueError("price_feed_mode must be 'static' or 'http'")
        return value

    @field_validator("audit_sink")
    @classmethod
    def _validate_audit_sink(cls, value: str) -> str:
        if value not in {"database", "log"}:
            raise ValueError("audit_sink must be 'database' or 'log'")
        return value

    @field_validator("retention_days", mode="before")
    @classmethod
    def _blank_retention(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("static_prices", mode="after")
    @classmethod
    def _parse_static_prices(cls, value: Any) -> dict[str, int]:
        if value in (None, "", {}):
            return {}
        if isinstance(value, str):
            prices: dict[str, int] = {}
            for token in (part.strip() for part in value.split(",")):
                if not token:
                    continue
                if "=" not in token:
                    raise ValueError("STATIC_PRICES entries must look like ASSET=PRICE")
                asset, raw_price = token.split("=", 1)
                try:
                    prices[asset.strip()] = int(raw_price.strip())
                except ValueError as exc:
                    raise ValueError("STATIC_PRICES prices must be integers") from exc
            return prices
        if isinstance(value, dict):
            return {str(asset): int(price) for asset, price in value.items()}
        raise ValueError("STATIC_PRICES must be a mapping or comma-separated ASSET=PRICE pairs")

    @model_validator(mode="after")
    def _validate_wager_bounds(self) -> "Settings":
        if self.max_wager < self.min_wager:
            raise ValueError("max_wager must be greater than or equal to min_wager")
        if self.price_feed_mode == "http" and not self.price_feed_base_url:
            raise ValueError("price_feed_base_url is required when price_feed_mode=http")
        return self

    @property
    def resolved_database_url(self) -> str:
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
