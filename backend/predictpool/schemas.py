from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .domain import Direction, Outcome

ROUND_ID_MAX = 2**63 - 1


class MarketConfigView(BaseModel):
    admin: str
    token: str
    oracle: str
    escrow_account: str
    min_wager: int
    max_wager: int
    house_edge_bps: int

    model_config = {"from_attributes": True}


class RoundView(BaseModel):
    round_id: int
    asset: str
    open_price: int
    close_price: int
    close_time: datetime
    total_up: int
    total_down: int
    settled: bool
    outcome: Outcome | None = None
    is_push: bool
    net_pool: int
    winning_total: int

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def _hide_pending_outcome(self) -> "RoundView":
        # Open rounds store a placeholder outcome until settlement.
        if not self.settled:
            self.outcome = None
        return self


class RoundList(BaseModel):
    items: list[RoundView]
    limit: int
    offset: int


class BetView(BaseModel):
    round_id: int
    participant: str
    direction: Direction
    wager: int
    claimed: bool

    model_config = {"from_attributes": True}


class SettlementView(BaseModel):
    round: RoundView
    total_pool: int
    fee: int

    model_config = {"from_attributes": True}


class ClaimView(BaseModel):
    round_id: int
    participant: str
    payout: int


class OpenRoundRequest(BaseModel):
    round_id: int = Field(ge=0, le=ROUND_ID_MAX, description="Caller-chosen unique round id")
    asset: str = Field(min_length=1, description="Asset symbol quoted by the price feed")
    close_time: datetime = Field(description="Instant after which wagers close and settlement opens")

    @field_validator("asset")
    @classmethod
    def _strip_asset(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("asset must not be blank")
        return stripped


class PlaceBetRequest(BaseModel):
    # Both fields reach the wager ledger as sent, so booleans and numeric strings
    # are rejected with market error codes rather than coerced by pydantic.
    direction: Any = Field(description="'up' or 'down' (legacy codes 0 and 1 accepted)")
    wager: Any = Field(description="Amount escrowed from the caller")


class MarketErrorBody(BaseModel):
    detail: str
    code: int
    error: str
