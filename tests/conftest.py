"""Shared test fixtures: fake sleep, model factories, mock Data API."""
from __future__ import annotations

import json
from typing import Callable, Dict, List

import httpx
import pytest

from traderwatch.models import Activity, Position, Trader, TraderPortfolio

NOW = 1_700_000_000

ADDR_A = "0x" + "a" * 40
ADDR_B = "0x" + "b" * 40
ADDR_C = "0x" + "c" * 40


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    """Records backoff delays instead of sleeping."""
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)
    return _sleep


@pytest.fixture
def make_position() -> Callable[..., Position]:
    def _make(**fields) -> Position:
        data = {"conditionId": "0xcond1", "outcomeIndex": 1, "outcome": "Yes"}
        data.update(fields)
        return Position.model_validate(data)
    return _make


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    def _make(**fields) -> Activity:
        data = {
            "timestamp": NOW - 60,
            "type": "TRADE",
            "side": "BUY",
            "conditionId": "0xcond1",
            "outcomeIndex": 1,
            "outcome": "Yes",
            "size": 100,
            "usdcSize": 50,
            "price": 0.5,
            "traderAddress": ADDR_A,
            "traderLabel": "alice",
        }
        data.update(fields)
        return Activity.model_validate(data)
    return _make


@pytest.fixture
def make_portfolio() -> Callable[..., TraderPortfolio]:
    def _make(address: str, positions: List[Position], label: str = "", fetch_success: bool = True):
        return TraderPortfolio(
            address=address,
            label=label or address[:10],
            tier="1",
            positions=positions,
            total_value=0.0,
            total_pnl=0.0,
            fetch_success=fetch_success,
            last_updated="2023-11-14T22:13:20Z",
        )
    return _make


@pytest.fixture
def traders() -> List[Trader]:
    return [
        Trader(address=ADDR_A, label="alice"),
        Trader(address=ADDR_B, label="bob"),
    ]


class FakeDataAPI:
    """Routes /positions, /value and /activity to canned per-user payloads."""

    def __init__(self):
        self.positions: Dict[str, object] = {}
        self.values: Dict[str, object] = {}
        self.activity: Dict[str, object] = {}
        self.failing: Dict[object, int] = {}  # path or (path, user) -> status
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        user = request.url.params.get("user", "")

        status = self.failing.get((path, user), self.failing.get(path))
        if status is not None:
            return httpx.Response(status)

        table = {
            "/positions": self.positions,
            "/value": self.values,
            "/activity": self.activity,
        }.get(path)
        if table is None:
            return httpx.Response(404)
        return httpx.Response(200, content=json.dumps(table.get(user, [])))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeDataAPI:
    return FakeDataAPI()


class FakePolygonRPC:
    """Answers ``eth_call`` balanceOf requests from a (token, wallet) -> raw units table."""

    def __init__(self):
        self.balances: Dict[tuple, int] = {}
        self.failing: Dict[str, int] = {}  # token -> HTTP status
        self.rpc_errors: set = set()  # tokens answering with a JSON-RPC error
        self.requests: List[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        call = body["params"][0]
        token = call["to"].lower()
        wallet = "0x" + call["data"][-40:]

        status = self.failing.get(token)
        if status is not None:
            return httpx.Response(status)
        if token in self.rpc_errors:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                             "error": {"code": -32000, "message": "execution reverted"}})

        raw = self.balances.get((token, wallet), 0)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": f"0x{raw:064x}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_rpc() -> FakePolygonRPC:
    return FakePolygonRPC()
