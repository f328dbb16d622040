"""API clients for the Polymarket Data API and the Polygon RPC."""
from .base import BaseAPIClient, RetryEvent
from .data_api import DataAPIClient
from .polygon_rpc import PolygonRPCClient

__all__ = ["BaseAPIClient", "RetryEvent", "DataAPIClient", "PolygonRPCClient"]
