"""Cross-trader position aggregation.

Positions of every successfully fetched trader are merged per market
outcome (``conditionId-outcomeIndex``) into one row carrying the trader
roster, total exposure, size-weighted entry price and current price.

curPrice is last-writer-wins: the last non-zero price seen while walking
traders in portfolio order (trader list order), then each trader's
positions in upstream order. Deterministic for a given input, but not
"most recent" in any time sense.

Summary stats are computed over every row before ``min_usd_filter`` is
applied, so ``summary.totalExposure`` can exceed the sum of emitted rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from traderwatch.config import EngineConfig
from traderwatch.models import (
    Activity,
    AggregatedPortfolio,
    AggregatedPosition,
    PortfolioSummary,
    TraderContribution,
    TraderPortfolio,
)
from traderwatch.shared.math_utils import round_pct, round_usd
from traderwatch.shared.time_utils import DAY, now_ts

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    condition_id: str
    title: str
    slug: str
    icon: str
    event_slug: str
    end_date: Optional[str]
    outcome: str
    outcome_index: int
    traders: List[TraderContribution] = field(default_factory=list)
    exposure_sum: float = 0.0
    weighted_price_sum: float = 0.0
    weighted_size: float = 0.0
    cur_price: float = 0.0

    @property
    def avg_entry(self) -> float:
        if self.weighted_size <= 0:
            return 0.0
        return self.weighted_price_sum / self.weighted_size


def build_change_24h_map(activity: List[Activity], now: int) -> Dict[str, float]:
    """Net signed USD flow per market outcome over the last 24 hours."""
    cutoff = now - DAY
    changes: Dict[str, float] = {}
    for a in activity:
        if a.timestamp < cutoff or not a.is_trade:
            continue
        key = a.outcome_key()
        changes[key] = changes.get(key, 0.0) + a.signed_usd
    return changes


def _collect(trader_portfolios: Dict[str, TraderPortfolio]) -> Dict[str, _Bucket]:
    buckets: Dict[str, _Bucket] = {}

    for address, portfolio in trader_portfolios.items():
        if not portfolio.fetch_success or not portfolio.positions:
            continue

        for pos in portfolio.positions:
            outcome_index, outcome = pos.resolved_outcome()
            key = f"{pos.condition_id}-{outcome_index}"

            bucket = buckets.get(key)
            if bucket is None:
                bucket = _Bucket(
                    condition_id=pos.condition_id,
                    title=pos.title or "Unknown Market",
                    slug=pos.slug or "",
                    icon=pos.icon or "",
                    event_slug=pos.event_slug or "",
                    end_date=pos.end_date,
                    outcome=outcome,
                    outcome_index=outcome_index,
                )
                buckets[key] = bucket

            exposure = round_usd(pos.exposure)
            size = pos.size or 0.0
            avg_price = pos.avg_price or 0.0
            cur_price = pos.cur_price or 0.0

            bucket.traders.append(TraderContribution(
                address=address,
                label=portfolio.label,
                exposure=exposure,
                size=size,
                avg_price=avg_price,
                cur_price=cur_price,
            ))
            bucket.exposure_sum += exposure

            if avg_price > 0 and size > 0:
                bucket.weighted_price_sum += avg_price * size
                bucket.weighted_size += size
            if cur_price > 0:
                bucket.cur_price = cur_price

    return buckets


def _finalize(bucket: _Bucket, change_24h: float) -> AggregatedPosition:
    avg_entry = bucket.avg_entry
    cur_price = bucket.cur_price

    price_change_pct = 0.0
    if avg_entry > 0 and cur_price > 0:
        price_change_pct = (cur_price - avg_entry) / avg_entry * 100

    return AggregatedPosition(
        condition_id=bucket.condition_id,
        title=bucket.title,
        slug=bucket.slug,
        icon=bucket.icon,
        event_slug=bucket.event_slug,
        end_date=bucket.end_date,
        outcome=bucket.outcome,
        outcome_index=bucket.outcome_index,
        traders=bucket.traders,
        total_exposure=round_usd(bucket.exposure_sum),
        avg_entry=round_usd(avg_entry),
        cur_price=round_usd(cur_price),
        change_24h=round_usd(change_24h),
        price_change_pct=round_pct(price_change_pct),
    )


def summarize(positions: List[AggregatedPosition]) -> PortfolioSummary:
    """Concentration stats over positions sorted by exposure descending.

    ``net_flow_24h`` is left at 0; the activity engine fills it in later.
    """
    total = sum((p.total_exposure for p in positions), 0.0)
    distinct_markets = len({p.condition_id for p in positions})

    top1_share = 0.0
    top5_share = 0.0
    if total > 0 and positions:
        top1_share = positions[0].total_exposure / total
        top5_share = sum(p.total_exposure for p in positions[:5]) / total

    return PortfolioSummary(
        total_exposure=round_usd(total),
        distinct_markets=distinct_markets,
        top1_share=round_usd(top1_share),
        top5_share=round_usd(top5_share),
        net_flow_24h=0.0,
    )


def aggregate_portfolios(
    trader_portfolios: Dict[str, TraderPortfolio],
    config: EngineConfig,
    activity: Optional[List[Activity]] = None,
    now: Optional[int] = None,
) -> AggregatedPortfolio:
    """Merge all trader positions into market-outcome rows plus a summary."""
    now = now_ts() if now is None else now
    change_map = build_change_24h_map(activity or [], now)

    buckets = _collect(trader_portfolios)
    positions = [_finalize(b, change_map.get(key, 0.0)) for key, b in buckets.items()]
    # sorted() is stable: equal exposures keep encounter order
    positions = sorted(positions, key=lambda p: p.total_exposure, reverse=True)

    summary = summarize(positions)

    min_usd = config.min_usd_filter
    emitted = [p for p in positions if p.total_exposure >= min_usd]
    if len(emitted) < len(positions):
        logger.debug(f"Filtered {len(positions) - len(emitted)} positions below ${min_usd}")

    logger.info(
        f"Aggregated {len(positions)} positions across {summary.distinct_markets} markets, "
        f"total exposure ${summary.total_exposure:,.2f}"
    )
    return AggregatedPortfolio(positions=emitted, summary=summary)
