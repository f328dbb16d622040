"""Tier-1 trader position watcher for Polymarket."""

__version__ = "1.0.0"
