"""Upstream models and engine output records."""
from .api_models import Activity, PortfolioValue, Position, resolve_outcome
from .records import (
    AggregatedPortfolio,
    AggregatedPosition,
    ChangeRecord,
    PortfolioSummary,
    RecentChanges,
    RunMetadata,
    Trader,
    TraderContribution,
    TraderPortfolio,
)

__all__ = [
    "Activity",
    "PortfolioValue",
    "Position",
    "resolve_outcome",
    "AggregatedPortfolio",
    "AggregatedPosition",
    "ChangeRecord",
    "PortfolioSummary",
    "RecentChanges",
    "RunMetadata",
    "Trader",
    "TraderContribution",
    "TraderPortfolio",
]
