"""Final composition of the aggregator and activity outputs."""
from __future__ import annotations

from typing import Dict, List, Optional

from traderwatch.models import (
    Activity,
    AggregatedPortfolio,
    RecentChanges,
    RunMetadata,
    TraderPortfolio,
)
from traderwatch.shared.time_utils import now_utc


def compose_summary(
    aggregated: AggregatedPortfolio,
    recent_changes: RecentChanges,
) -> AggregatedPortfolio:
    """Copy the 24h window net flow into the aggregated summary.

    Must run after both the aggregator and ``process_recent_changes``; the
    aggregator leaves ``net_flow_24h`` at 0.
    """
    aggregated.summary.net_flow_24h = recent_changes.window_summaries.get("24h", 0.0)
    return aggregated


def build_metadata(
    trader_portfolios: Dict[str, TraderPortfolio],
    aggregated: AggregatedPortfolio,
    activity: List[Activity],
    trader_count: Optional[int] = None,
    last_updated: Optional[str] = None,
) -> RunMetadata:
    return RunMetadata(
        last_updated=last_updated or now_utc(),
        trader_count=len(trader_portfolios) if trader_count is None else trader_count,
        traders_fetched=sum(1 for p in trader_portfolios.values() if p.fetch_success),
        market_count=aggregated.summary.distinct_markets,
        total_exposure=aggregated.summary.total_exposure,
        activity_count=len(activity),
    )
