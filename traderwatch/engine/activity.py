"""Activity windowing: change ledger, rolling net flows, per-position breakdowns."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from traderwatch.fetch.batch import FetchResult
from traderwatch.models import Activity, ChangeRecord, RecentChanges, Trader, TraderPortfolio
from traderwatch.shared.math_utils import round_usd
from traderwatch.shared.time_utils import DAY, HOUR, now_ts

logger = logging.getLogger(__name__)

# Windows are cumulative: an event 2h old counts toward 6h, 24h, 7d and 30d.
FLOW_WINDOWS: Dict[str, int] = {
    "1h": HOUR,
    "6h": 6 * HOUR,
    "24h": DAY,
    "7d": 7 * DAY,
    "30d": 30 * DAY,
}

POSITION_WINDOWS: Dict[str, int] = {
    "1h": HOUR,
    "1d": DAY,
    "1w": 7 * DAY,
}

DETAIL_LIMIT = 5


def collect_activity(
    activity_results: Dict[str, FetchResult[List[Activity]]],
    traders: List[Trader],
    max_events: int,
) -> List[Activity]:
    """Flatten per-trader activity into one feed, newest first.

    Each event is stamped with its trader's address and label. The feed is
    truncated to ``max_events``. Ties on timestamp are broken by trader list
    order (addresses not in ``traders`` last, sorted), then upstream order,
    so the result does not depend on the order the fetches completed in.
    """
    labels = {t.address.lower(): t.label for t in traders}
    order = list(labels) + sorted(a for a in activity_results if a not in labels)
    feed: List[Activity] = []

    for address in order:
        result = activity_results.get(address)
        if result is None or not result.success or not result.data:
            continue
        label = labels.get(address) or address[:10]
        for a in result.data:
            feed.append(a.model_copy(update={"trader_address": address, "trader_label": label}))

    feed.sort(key=lambda a: a.timestamp, reverse=True)
    return feed[:max_events]


def _action(side: Optional[str]) -> str:
    if side == "BUY":
        return "increased"
    if side == "SELL":
        return "decreased"
    return "unknown"


def _change_record(a: Activity, delta: float) -> ChangeRecord:
    outcome = a.outcome or ""
    if not outcome and a.outcome_index is not None:
        outcome = "No" if a.outcome_index == 0 else "Yes"

    return ChangeRecord(
        timestamp=a.timestamp,
        trader=a.trader_label or (a.proxy_wallet[:10] if a.proxy_wallet else None),
        trader_address=a.trader_address or a.proxy_wallet,
        market=a.title or "Unknown Market",
        market_slug=a.slug or "",
        event_slug=a.event_slug or "",
        condition_id=a.condition_id or "",
        outcome=outcome,
        outcome_index=a.outcome_index,
        action=_action(a.side),
        delta=round_usd(delta),
        size=a.size or 0.0,
        price=a.price or 0.0,
    )


def process_recent_changes(
    activity: List[Activity],
    trader_portfolios: Optional[Dict[str, TraderPortfolio]] = None,
    now: Optional[int] = None,
) -> RecentChanges:
    """Turn the activity feed into a change ledger and window net flows.

    Only TRADE (or untyped) events are kept. One ChangeRecord per event,
    in feed order. ``trader_portfolios`` is accepted for call-site symmetry
    with the aggregator; labels already travel on the events.
    """
    now = now_ts() if now is None else now
    cutoffs = {name: now - span for name, span in FLOW_WINDOWS.items()}
    sums = {name: 0.0 for name in FLOW_WINDOWS}

    changes: List[ChangeRecord] = []
    for a in activity:
        if not a.is_trade:
            continue
        delta = a.signed_usd
        for name, cutoff in cutoffs.items():
            if a.timestamp >= cutoff:
                sums[name] += delta
        changes.append(_change_record(a, delta))

    summaries = {name: round_usd(total) for name, total in sums.items()}
    logger.info(f"Processed {len(changes)} changes, 24h net flow ${summaries['24h']:,.2f}")
    return RecentChanges(changes=changes, window_summaries=summaries)


@dataclass(frozen=True)
class TraderChange:
    trader: str
    change: float


@dataclass(frozen=True)
class WindowBreakdown:
    """Net change for one window plus per-trader detail, largest |change| first."""
    total: float
    details: Tuple[TraderChange, ...] = ()

    def top(self, limit: int = DETAIL_LIMIT) -> Tuple[Tuple[TraderChange, ...], int]:
        """First ``limit`` details and how many more were left out."""
        return self.details[:limit], max(0, len(self.details) - limit)

    def detail_lines(self, limit: int = DETAIL_LIMIT) -> List[str]:
        """Display lines: top traders, a "+N more" line, then the total."""
        shown, remaining = self.top(limit)
        lines = [f"{d.trader}: {_signed_usd(d.change)}" for d in shown]
        if remaining:
            lines.append(f"+{remaining} more...")
        if self.details:
            lines.append(f"Total: {_signed_usd(self.total)}")
        return lines


@dataclass(frozen=True)
class PositionChanges:
    windows: Dict[str, WindowBreakdown] = field(default_factory=dict)

    def __getitem__(self, window: str) -> WindowBreakdown:
        return self.windows[window]


def _signed_usd(value: float) -> str:
    sign = "+" if value >= 0 else "-"
    return f"{sign}${abs(value):,.2f}"


def _matches_outcome(change: ChangeRecord, outcome_index: int) -> bool:
    if change.outcome_index is not None:
        return change.outcome_index == outcome_index
    return (
        (change.outcome == "Yes" and outcome_index == 1)
        or (change.outcome == "No" and outcome_index == 0)
    )


def calculate_position_changes(
    changes: List[ChangeRecord],
    condition_id: str,
    outcome_index: int,
    now: Optional[int] = None,
) -> PositionChanges:
    """Net 1h/1d/1w change for one market outcome, broken down by trader.

    Read-only over ``changes``; calling it repeatedly gives equal results.
    """
    now = now_ts() if now is None else now
    cutoffs = {name: now - span for name, span in POSITION_WINDOWS.items()}
    totals = {name: 0.0 for name in POSITION_WINDOWS}
    per_trader: Dict[str, Dict[str, float]] = {name: {} for name in POSITION_WINDOWS}

    for c in changes:
        if c.condition_id != condition_id or not _matches_outcome(c, outcome_index):
            continue
        trader = c.trader or (c.trader_address or "")[:10]
        for name, cutoff in cutoffs.items():
            if c.timestamp >= cutoff:
                totals[name] += c.delta
                bucket = per_trader[name]
                bucket[trader] = bucket.get(trader, 0.0) + c.delta

    windows = {}
    for name in POSITION_WINDOWS:
        details = sorted(
            (TraderChange(trader=t, change=v) for t, v in per_trader[name].items()),
            key=lambda d: abs(d.change),
            reverse=True,
        )
        windows[name] = WindowBreakdown(total=round_usd(totals[name]), details=tuple(details))

    return PositionChanges(windows=windows)
