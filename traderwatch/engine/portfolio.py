"""Per-trader portfolio snapshots from the positions and value batches."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from traderwatch.fetch.batch import FetchResult
from traderwatch.models import Position, Trader, TraderPortfolio
from traderwatch.shared.math_utils import round_usd
from traderwatch.shared.time_utils import now_utc

logger = logging.getLogger(__name__)


def total_pnl(positions: List[Position]) -> float:
    """Sum of cashPnl (fallback pnl, fallback 0), rounded to cents."""
    return round_usd(sum((p.realized_pnl for p in positions), 0.0))


def build_trader_portfolios(
    traders: List[Trader],
    positions_results: Dict[str, FetchResult[List[Position]]],
    value_results: Dict[str, FetchResult[float]],
    last_updated: Optional[str] = None,
    balance_results: Optional[Dict[str, FetchResult[float]]] = None,
) -> Dict[str, TraderPortfolio]:
    """Join the fetch batches into one portfolio per trader.

    A trader is ``fetch_success`` only if both the positions and the value
    fetches succeeded. The USDC balance is informational: a missing or
    failed balance is 0 and does not affect ``fetch_success``. Failed
    traders stay in the output so they can be shown as errors.
    Output order follows ``traders``.
    """
    stamp = last_updated or now_utc()
    balance_results = balance_results or {}
    portfolios: Dict[str, TraderPortfolio] = {}

    for trader in traders:
        addr = trader.address.lower()
        pos_result = positions_results.get(addr)
        val_result = value_results.get(addr)
        bal_result = balance_results.get(addr)

        pos_ok = pos_result is not None and pos_result.success
        val_ok = val_result is not None and val_result.success
        positions = list(pos_result.data or []) if pos_ok else []

        if not (pos_ok and val_ok):
            logger.warning(
                f"Partial fetch for {trader.label} ({addr}): "
                f"positions={'ok' if pos_ok else 'failed'} value={'ok' if val_ok else 'failed'}"
            )

        portfolios[addr] = TraderPortfolio(
            address=addr,
            label=trader.label,
            tier=trader.tier or "1",
            positions=positions,
            total_value=val_result.data if val_ok else 0.0,
            total_pnl=total_pnl(positions),
            fetch_success=pos_ok and val_ok,
            last_updated=stamp,
            usdc_balance=bal_result.data if bal_result is not None and bal_result.success else 0.0,
        )

    return portfolios
