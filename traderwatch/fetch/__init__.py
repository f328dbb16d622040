"""Batch fetching across trader addresses."""
from .batch import FetchResult, batch_fetch

__all__ = ["FetchResult", "batch_fetch"]
