"""Data API client for positions, activity, and portfolio value."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from traderwatch.clients.base import BaseAPIClient, RetryEvent
from traderwatch.config import DataAPIConfig, EngineConfig
from traderwatch.errors import MalformedResponseError
from traderwatch.models import Activity, PortfolioValue, Position

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class DataAPIClient(BaseAPIClient):
    """Client for the public Data API. No authentication."""

    def __init__(
        self,
        config: DataAPIConfig | None = None,
        engine: EngineConfig | None = None,
        on_retry: Optional[Callable[[RetryEvent], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or DataAPIConfig()
        self.engine = engine or EngineConfig()
        super().__init__(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            retry_attempts=self.engine.retry_attempts,
            retry_base_delay=self.engine.retry_base_delay,
            on_retry=on_retry,
            transport=transport,
            sleep=sleep,
        )

    async def _get_list(self, endpoint: str, params: dict) -> list:
        """GET an endpoint that returns a JSON array.

        ``null`` and non-JSON bodies are treated as empty. Any other
        non-list payload is logged and treated as empty too.
        """
        try:
            response = await self.get(endpoint, params=params)
        except MalformedResponseError as e:
            logger.error(f"{e}, treating as empty")
            return []

        if response is None:
            return []
        if not isinstance(response, list):
            logger.error(
                f"Unexpected {type(response).__name__} from {endpoint} "
                f"for user {params.get('user')}, treating as empty"
            )
            return []
        return response

    @staticmethod
    def _parse_items(items: list, model: Type[ModelT], what: str) -> List[ModelT]:
        parsed = []
        for item in items:
            try:
                parsed.append(model.model_validate(item))
            except ValidationError as e:
                logger.error(f"Failed to parse {what}: {e.error_count()} error(s)")
                logger.debug(f"{what.capitalize()} data: {item}")
        return parsed

    async def fetch_positions(self, address: str, limit: int | None = None) -> List[Position]:
        """Fetch open positions for a wallet."""
        if limit is None:
            limit = self.engine.positions_limit
        user = address.lower()

        items = await self._get_list("/positions", {"user": user, "limit": limit})
        positions = self._parse_items(items, Position, "position")
        logger.debug(f"Fetched {len(positions)} positions for {user}")
        return positions

    async def fetch_activity(
        self,
        address: str,
        since: int | None = None,
        limit: int | None = None,
    ) -> List[Activity]:
        """Fetch activity for a wallet, optionally starting at a unix timestamp."""
        if limit is None:
            limit = self.engine.activity_limit_per_trader
        user = address.lower()

        params: dict[str, Any] = {"user": user, "limit": limit}
        if since:
            params["start"] = since

        items = await self._get_list("/activity", params)
        activity = self._parse_items(items, Activity, "activity")
        logger.debug(f"Fetched {len(activity)} activities for {user}")
        return activity

    async def fetch_value(self, address: str) -> float:
        """Fetch total portfolio value in USD. No data means 0."""
        user = address.lower()
        items = await self._get_list("/value", {"user": user})
        if not items:
            return 0.0

        values = self._parse_items(items[:1], PortfolioValue, "value")
        return values[0].value if values else 0.0
