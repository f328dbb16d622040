"""Tests for DataAPIClient endpoint parsing."""
import httpx
import pytest

from traderwatch.clients import DataAPIClient
from traderwatch.config import DataAPIConfig, EngineConfig
from traderwatch.errors import TransientUpstreamError

USER = "0x" + "ab" * 20


def client_for(handler, fake_sleep, **engine_kwargs):
    return DataAPIClient(
        DataAPIConfig(base_url="https://data.test"),
        EngineConfig(**engine_kwargs),
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
    )


@pytest.mark.asyncio
async def test_fetch_positions_parses_and_lowercases_user(fake_sleep):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[
            {"conditionId": "0xc1", "outcomeIndex": 0, "size": "10", "avgPrice": 0.4, "curPrice": "0.5",
             "title": "Will it rain?", "proxyWallet": USER},
        ])

    async with client_for(handler, fake_sleep, positions_limit=250) as client:
        positions = await client.fetch_positions(USER.upper().replace("0X", "0x"))

    assert len(positions) == 1
    pos = positions[0]
    assert pos.condition_id == "0xc1"
    assert pos.size == 10.0
    assert pos.cur_price == 0.5
    assert pos.to_raw()["proxyWallet"] == USER
    assert seen[0].url.path == "/positions"
    assert seen[0].url.params["user"] == USER
    assert seen[0].url.params["limit"] == "250"


@pytest.mark.asyncio
async def test_invalid_records_are_skipped(fake_sleep):
    def handler(request):
        return httpx.Response(200, json=[
            {"conditionId": "0xc1", "size": 5},
            {"size": 3},  # no conditionId
            {"conditionId": "0xc2", "size": "not a number"},
        ])

    async with client_for(handler, fake_sleep) as client:
        positions = await client.fetch_positions(USER)

    assert [p.condition_id for p in positions] == ["0xc1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, [], {"error": "weird"}])
async def test_empty_or_unexpected_payload_is_empty(fake_sleep, payload):
    def handler(request):
        return httpx.Response(200, json=payload)

    async with client_for(handler, fake_sleep) as client:
        assert await client.fetch_positions(USER) == []
        assert await client.fetch_activity(USER) == []
        assert await client.fetch_value(USER) == 0.0


@pytest.mark.asyncio
async def test_non_json_body_is_treated_as_empty(fake_sleep, sleeps):
    def handler(request):
        return httpx.Response(200, text="upstream maintenance")

    async with client_for(handler, fake_sleep) as client:
        assert await client.fetch_positions(USER) == []

    assert sleeps == []


@pytest.mark.asyncio
async def test_fetch_activity_passes_start_and_limit(fake_sleep):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[
            {"timestamp": 1700000000, "type": "TRADE", "side": "SELL", "conditionId": "0xc1",
             "usdcSize": "12.5", "size": 25},
        ])

    async with client_for(handler, fake_sleep, activity_limit_per_trader=50) as client:
        activity = await client.fetch_activity(USER, since=1690000000)

    assert activity[0].usdc_size == 12.5
    assert activity[0].signed_usd == -12.5
    assert seen[0].url.params["start"] == "1690000000"
    assert seen[0].url.params["limit"] == "50"


@pytest.mark.asyncio
async def test_fetch_activity_without_since_has_no_start(fake_sleep):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[])

    async with client_for(handler, fake_sleep) as client:
        await client.fetch_activity(USER, limit=10)

    assert "start" not in seen[0].url.params
    assert seen[0].url.params["limit"] == "10"


@pytest.mark.asyncio
async def test_fetch_value_reads_first_entry(fake_sleep):
    def handler(request):
        return httpx.Response(200, json=[{"user": USER, "value": "1234.56"}])

    async with client_for(handler, fake_sleep) as client:
        assert await client.fetch_value(USER) == 1234.56


@pytest.mark.asyncio
async def test_retry_attempts_come_from_engine_config(fake_sleep, sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    async with client_for(handler, fake_sleep, retry_attempts=2, retry_base_delay_ms=250) as client:
        with pytest.raises(TransientUpstreamError):
            await client.fetch_value(USER)

    assert len(calls) == 2
    assert sleeps == [0.25]
