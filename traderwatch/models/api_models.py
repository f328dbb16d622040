"""Pydantic models for Polymarket Data API responses.

Upstream JSON is loosely typed: numbers arrive as strings or floats, fields
come and go. Everything is parsed once here and the engine works with these
models. Fields the engine does not read are kept as extras so the raw
position document can be re-emitted unchanged.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def resolve_outcome(
    outcome_index: Optional[int],
    outcome: Optional[str],
) -> tuple[int, str]:
    """Resolve an (outcomeIndex, outcome) pair that agree with each other.

    Index falls back to ``"Yes" -> 1`` else 0. Outcome falls back to
    ``0 -> "No"`` else ``"Yes"``. If both are given and a Yes/No label
    contradicts the index, the index wins.
    """
    if outcome_index is None:
        outcome_index = 1 if outcome == "Yes" else 0

    index_label = "No" if outcome_index == 0 else "Yes"
    if not outcome:
        outcome = index_label
    elif outcome in ("Yes", "No") and outcome != index_label:
        outcome = index_label

    return outcome_index, outcome


class Position(BaseModel):
    """Open position from /positions."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    condition_id: str = Field(alias="conditionId")
    outcome: Optional[str] = None
    outcome_index: Optional[int] = Field(None, alias="outcomeIndex")
    size: Optional[float] = None
    avg_price: Optional[float] = Field(None, alias="avgPrice")
    cur_price: Optional[float] = Field(None, alias="curPrice")
    current_value: Optional[float] = Field(None, alias="currentValue")
    cash_pnl: Optional[float] = Field(None, alias="cashPnl")
    pnl: Optional[float] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    icon: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    end_date: Optional[str] = Field(None, alias="endDate")

    @property
    def exposure(self) -> float:
        """Absolute USD value: currentValue, else size*curPrice, else size."""
        if self.current_value is not None:
            return abs(self.current_value)
        if self.size is not None and self.cur_price is not None:
            return abs(self.size * self.cur_price)
        if self.size is not None:
            return abs(self.size)
        return 0.0

    @property
    def realized_pnl(self) -> float:
        """cashPnl (realized + unrealized), else pnl, else 0."""
        if self.cash_pnl is not None:
            return self.cash_pnl
        if self.pnl is not None:
            return self.pnl
        return 0.0

    def resolved_outcome(self) -> tuple[int, str]:
        return resolve_outcome(self.outcome_index, self.outcome)

    def to_raw(self) -> dict[str, Any]:
        """Upstream-shaped dict with only the fields upstream sent."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class Activity(BaseModel):
    """Activity entry from /activity, stamped with the owning trader."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    timestamp: int = 0
    type: Optional[str] = None  # TRADE, REDEEM, YIELD, REWARD, ...
    side: Optional[str] = None  # BUY or SELL
    condition_id: Optional[str] = Field(None, alias="conditionId")
    outcome: Optional[str] = None
    outcome_index: Optional[int] = Field(None, alias="outcomeIndex")
    size: Optional[float] = None
    usdc_size: Optional[float] = Field(None, alias="usdcSize")
    price: Optional[float] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    trader_address: Optional[str] = Field(None, alias="traderAddress")
    trader_label: Optional[str] = Field(None, alias="traderLabel")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _missing_timestamp(cls, value):
        return 0 if value is None else int(float(value))

    @property
    def is_trade(self) -> bool:
        """TRADE events and untyped events count as position changes."""
        return not self.type or self.type == "TRADE"

    @property
    def signed_usd(self) -> float:
        """BUY adds, anything else subtracts. usdcSize, else size, else 0."""
        if self.usdc_size is not None:
            amount = self.usdc_size
        elif self.size is not None:
            amount = self.size
        else:
            amount = 0.0
        return amount if self.side == "BUY" else -amount

    def outcome_key(self) -> str:
        outcome_index, _ = resolve_outcome(self.outcome_index, self.outcome)
        return f"{self.condition_id}-{outcome_index}"


class PortfolioValue(BaseModel):
    """Entry from /value."""
    model_config = ConfigDict(extra="allow")

    user: Optional[str] = None
    value: float = 0.0
