"""Records produced by the engine and serialized into the output documents.

Output documents keep the camelCase keys the dashboard reads; ``to_dict``
is the only place that naming lives.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from traderwatch.models.api_models import Position


@dataclass(frozen=True)
class Trader:
    address: str  # lowercase 0x + 40 hex
    label: str
    tier: str = "1"


@dataclass
class TraderPortfolio:
    address: str
    label: str
    tier: str
    positions: List[Position]
    total_value: float
    total_pnl: float
    fetch_success: bool
    last_updated: str
    usdc_balance: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "label": self.label,
            "tier": self.tier,
            "positions": [p.to_raw() for p in self.positions],
            "totalValue": self.total_value,
            "totalPnL": self.total_pnl,
            "usdcBalance": self.usdc_balance,
            "fetchSuccess": self.fetch_success,
            "lastUpdated": self.last_updated,
        }


@dataclass
class TraderContribution:
    """One trader's holding inside an aggregated market outcome."""
    address: str
    label: str
    exposure: float
    size: float
    avg_price: float
    cur_price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "label": self.label,
            "exposure": self.exposure,
            "size": self.size,
            "avgPrice": self.avg_price,
            "curPrice": self.cur_price,
        }


@dataclass
class AggregatedPosition:
    condition_id: str
    title: str
    slug: str
    icon: str
    event_slug: str
    end_date: Optional[str]
    outcome: str
    outcome_index: int
    traders: List[TraderContribution]
    total_exposure: float
    avg_entry: float
    cur_price: float
    change_24h: float
    price_change_pct: float

    @property
    def key(self) -> str:
        return f"{self.condition_id}-{self.outcome_index}"

    @property
    def trader_count(self) -> int:
        return len(self.traders)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conditionId": self.condition_id,
            "title": self.title,
            "slug": self.slug,
            "icon": self.icon,
            "eventSlug": self.event_slug,
            "endDate": self.end_date,
            "outcome": self.outcome,
            "outcomeIndex": self.outcome_index,
            "traderCount": self.trader_count,
            "traders": [t.to_dict() for t in self.traders],
            "totalExposure": self.total_exposure,
            "change24h": self.change_24h,
            "avgEntry": self.avg_entry,
            "curPrice": self.cur_price,
            "priceChangePct": self.price_change_pct,
        }


@dataclass
class PortfolioSummary:
    total_exposure: float = 0.0
    distinct_markets: int = 0
    top1_share: float = 0.0
    top5_share: float = 0.0
    net_flow_24h: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalExposure": self.total_exposure,
            "distinctMarkets": self.distinct_markets,
            "top1Share": self.top1_share,
            "top5Share": self.top5_share,
            "netFlow24h": self.net_flow_24h,
        }


@dataclass
class AggregatedPortfolio:
    positions: List[AggregatedPosition]
    summary: PortfolioSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positions": [p.to_dict() for p in self.positions],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class ChangeRecord:
    timestamp: int
    trader: Optional[str]
    trader_address: Optional[str]
    market: str
    market_slug: str
    event_slug: str
    condition_id: str
    outcome: str
    outcome_index: Optional[int]
    action: str  # 'increased', 'decreased', 'unknown'
    delta: float
    size: float
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "trader": self.trader,
            "traderAddress": self.trader_address,
            "market": self.market,
            "marketSlug": self.market_slug,
            "eventSlug": self.event_slug,
            "conditionId": self.condition_id,
            "outcome": self.outcome,
            "outcomeIndex": self.outcome_index,
            "action": self.action,
            "delta": self.delta,
            "size": self.size,
            "price": self.price,
        }


@dataclass
class RecentChanges:
    changes: List[ChangeRecord]
    window_summaries: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "changes": [c.to_dict() for c in self.changes],
            "windowSummaries": dict(self.window_summaries),
        }


@dataclass(frozen=True)
class RunMetadata:
    last_updated: str
    trader_count: int
    traders_fetched: int
    market_count: int
    total_exposure: float
    activity_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_updated": self.last_updated,
            "trader_count": self.trader_count,
            "traders_fetched": self.traders_fetched,
            "market_count": self.market_count,
            "total_exposure": self.total_exposure,
            "activity_count": self.activity_count,
        }
