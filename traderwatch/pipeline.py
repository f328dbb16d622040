"""One refresh run: fetch every trader, aggregate, and build the four documents.

Stage order is fixed: positions and value batches, activity batch, portfolio
build, aggregation, activity windowing, then summary composition.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from traderwatch.clients import DataAPIClient, PolygonRPCClient
from traderwatch.config import EngineConfig
from traderwatch.engine.activity import collect_activity, process_recent_changes
from traderwatch.engine.aggregator import aggregate_portfolios
from traderwatch.engine.portfolio import build_trader_portfolios
from traderwatch.engine.summary import build_metadata, compose_summary
from traderwatch.fetch import batch_fetch
from traderwatch.models import (
    Activity,
    AggregatedPortfolio,
    RecentChanges,
    RunMetadata,
    Trader,
    TraderPortfolio,
)
from traderwatch.shared.time_utils import DAY, now_ts

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
TRADER_PORTFOLIOS_FILE = "trader_portfolios.json"
AGGREGATED_PORTFOLIO_FILE = "aggregated_portfolio.json"
RECENT_CHANGES_FILE = "recent_changes.json"


@dataclass
class RunContext:
    """Everything a run reads. ``now`` is frozen at run start.

    Without an ``rpc`` client USDC balances are not fetched and stay 0.
    """
    traders: List[Trader]
    config: EngineConfig
    client: DataAPIClient
    now: int = field(default_factory=now_ts)
    rpc: Optional[PolygonRPCClient] = None

    @property
    def addresses(self) -> List[str]:
        return [t.address.lower() for t in self.traders]

    @property
    def timestamp(self) -> str:
        return datetime.fromtimestamp(self.now, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class RunResult:
    metadata: RunMetadata
    trader_portfolios: Dict[str, TraderPortfolio]
    aggregated_portfolio: AggregatedPortfolio
    recent_changes: RecentChanges
    activity: List[Activity] = field(default_factory=list)

    def documents(self) -> Dict[str, Any]:
        """Output filename -> JSON-ready document."""
        return {
            METADATA_FILE: self.metadata.to_dict(),
            TRADER_PORTFOLIOS_FILE: {
                addr: p.to_dict() for addr, p in self.trader_portfolios.items()
            },
            AGGREGATED_PORTFOLIO_FILE: self.aggregated_portfolio.to_dict(),
            RECENT_CHANGES_FILE: self.recent_changes.to_dict(),
        }


async def fetch_all_portfolios(ctx: RunContext) -> Dict[str, TraderPortfolio]:
    """Positions, value and USDC balance for every trader, joined per trader."""
    logger.info(f"Fetching portfolios for {len(ctx.traders)} traders...")
    concurrency = ctx.config.concurrency_limit

    positions_results = await batch_fetch(ctx.addresses, ctx.client.fetch_positions, concurrency)
    value_results = await batch_fetch(ctx.addresses, ctx.client.fetch_value, concurrency)
    balance_results = None
    if ctx.rpc is not None:
        balance_results = await batch_fetch(ctx.addresses, ctx.rpc.fetch_usdc_balance, concurrency)

    return build_trader_portfolios(
        ctx.traders,
        positions_results,
        value_results,
        last_updated=ctx.timestamp,
        balance_results=balance_results,
    )


async def fetch_all_activity(ctx: RunContext) -> List[Activity]:
    """Recent activity of every trader as one feed, newest first."""
    logger.info(f"Fetching activity for {len(ctx.traders)} traders...")
    since = ctx.now - ctx.config.activity_lookback_days * DAY
    limit = ctx.config.activity_limit_per_trader

    async def fetch_one(address: str) -> List[Activity]:
        return await ctx.client.fetch_activity(address, since=since, limit=limit)

    activity_results = await batch_fetch(ctx.addresses, fetch_one, ctx.config.concurrency_limit)
    return collect_activity(activity_results, ctx.traders, ctx.config.max_recent_events)


def compute_documents(
    ctx: RunContext,
    trader_portfolios: Dict[str, TraderPortfolio],
    activity: List[Activity],
) -> RunResult:
    """Pure part of a run: everything after the fetches."""
    aggregated = aggregate_portfolios(trader_portfolios, ctx.config, activity, now=ctx.now)
    recent_changes = process_recent_changes(activity, trader_portfolios, now=ctx.now)
    compose_summary(aggregated, recent_changes)

    metadata = build_metadata(
        trader_portfolios,
        aggregated,
        activity,
        trader_count=len(ctx.traders),
        last_updated=ctx.timestamp,
    )
    return RunResult(
        metadata=metadata,
        trader_portfolios=trader_portfolios,
        aggregated_portfolio=aggregated,
        recent_changes=recent_changes,
        activity=activity,
    )


async def run_refresh(
    traders: List[Trader],
    config: EngineConfig,
    client: DataAPIClient,
    now: Optional[int] = None,
    rpc: Optional[PolygonRPCClient] = None,
) -> RunResult:
    """Full run against open clients (``async with DataAPIClient(...)``)."""
    ctx = RunContext(traders=traders, config=config, client=client, rpc=rpc)
    if now is not None:
        ctx.now = now

    trader_portfolios = await fetch_all_portfolios(ctx)
    activity = await fetch_all_activity(ctx)
    result = compute_documents(ctx, trader_portfolios, activity)

    logger.info(
        f"Run complete: {result.metadata.traders_fetched}/{result.metadata.trader_count} traders, "
        f"{result.metadata.market_count} markets, {result.metadata.activity_count} activities"
    )
    return result
