"""Polygon JSON-RPC client for on-chain USDC balances."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from traderwatch.clients.base import BaseAPIClient, RetryEvent
from traderwatch.config import EngineConfig, PolygonRPCConfig
from traderwatch.errors import FetchError
from traderwatch.shared.math_utils import round_usd

logger = logging.getLogger(__name__)

BALANCE_OF_SELECTOR = bytes(Web3.keccak(text="balanceOf(address)")[:4])
USDC_DECIMALS = 6


def balance_of_calldata(address: str) -> str:
    """ABI-encoded ``balanceOf(address)`` call."""
    args = encode(["address"], [Web3.to_checksum_address(address)])
    return "0x" + (BALANCE_OF_SELECTOR + args).hex()


class PolygonRPCClient(BaseAPIClient):
    """Reads ERC-20 balances with ``eth_call``. Public RPC, no key."""

    def __init__(
        self,
        config: PolygonRPCConfig | None = None,
        engine: EngineConfig | None = None,
        on_retry: Optional[Callable[[RetryEvent], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or PolygonRPCConfig()
        engine = engine or EngineConfig()
        super().__init__(
            base_url=self.config.url,
            timeout=self.config.timeout,
            retry_attempts=engine.retry_attempts,
            retry_base_delay=engine.retry_base_delay,
            on_retry=on_retry,
            transport=transport,
            sleep=sleep,
        )

    async def token_balance(self, token: str, address: str) -> float:
        """Balance of ``address`` in ``token`` units. Any failure counts as 0."""
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [{"to": token, "data": balance_of_calldata(address)}, "latest"],
            "id": 1,
        }
        try:
            response = await self.post("", json=payload)
        except FetchError as e:
            logger.warning(f"Failed to fetch USDC balance from {token}: {e}")
            return 0.0

        if not isinstance(response, dict):
            logger.warning(f"Unexpected {type(response).__name__} from eth_call on {token}")
            return 0.0
        if response.get("error"):
            logger.warning(f"eth_call on {token} failed: {response['error']}")
            return 0.0

        result = response.get("result")
        if not result or result == "0x":
            return 0.0
        try:
            (raw,) = decode(["uint256"], bytes.fromhex(result.removeprefix("0x")))
        except (AttributeError, TypeError, ValueError, DecodingError):
            logger.warning(f"Bad eth_call result from {token}: {result!r}")
            return 0.0
        return raw / 10 ** USDC_DECIMALS

    async def fetch_usdc_balance(self, address: str) -> float:
        """Native USDC plus USDC.e held by the wallet, rounded to cents."""
        total = 0.0
        for token in self.config.usdc_contracts:
            total += await self.token_balance(token, address)
        return round_usd(total)
