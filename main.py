#!/usr/bin/env python3
"""
Tier-1 Trader Watch data refresh

Usage:
    python main.py refresh
    python main.py refresh --traders data/tier1_traders.csv --out docs/data
    python main.py watch
"""
from traderwatch.cli import cli


if __name__ == "__main__":
    cli()
