"""Tests for configuration loading."""
import json
import os
from pathlib import Path

import pytest

from traderwatch.config import EngineConfig, load_config, load_engine_config
from traderwatch.errors import ConfigError

ENV_VARS = ("TRADERWATCH_CONFIG", "DATA_API_URL", "POLYGON_RPC_URL", "TRADERS_CSV", "OUTPUT_DIR")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield
    # load_dotenv writes os.environ directly
    for var in ENV_VARS:
        os.environ.pop(var, None)


def test_defaults():
    config = EngineConfig()
    assert config.poll_interval_seconds == 300
    assert config.max_recent_events == 200
    assert config.min_usd_filter == 0
    assert config.concurrency_limit == 5
    assert config.retry_attempts == 3
    assert config.retry_base_delay == 1.0
    assert config.activity_limit_per_trader == 500


def test_from_dict_coerces_and_ignores_unknown():
    config = EngineConfig.from_dict({
        "min_usd_filter": "50",
        "concurrency_limit": 8.0,
        "retry_attempts": None,
        "some_future_option": True,
    })
    assert config.min_usd_filter == 50.0
    assert config.concurrency_limit == 8
    assert config.retry_attempts == 3


@pytest.mark.parametrize(
    "raw",
    [
        {"concurrency_limit": 0},
        {"retry_attempts": 0},
        {"retry_base_delay_ms": -1},
        {"min_usd_filter": -5},
        {"poll_interval_seconds": "often"},
        {"concurrency_limit": 2.7},
        {"retry_attempts": True},
        {"min_usd_filter": False},
        {"max_recent_events": "12.5"},
    ],
)
def test_invalid_values(raw):
    with pytest.raises(ConfigError):
        EngineConfig.from_dict(raw)


def test_non_object_rejected():
    with pytest.raises(ConfigError):
        EngineConfig.from_dict([1, 2])


def test_missing_file_gives_defaults(tmp_path):
    assert load_engine_config(tmp_path / "missing.json") == EngineConfig()


def test_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="not valid JSON"):
        load_engine_config(path)


def test_load_config_file_and_env(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"min_usd_filter": 50, "max_recent_events": 10}))
    monkeypatch.setenv("DATA_API_URL", "https://data.test")
    monkeypatch.setenv("POLYGON_RPC_URL", "https://rpc.test")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))

    config = load_config(path, env_file=tmp_path / "absent.env")

    assert config.engine.min_usd_filter == 50
    assert config.engine.max_recent_events == 10
    assert config.data_api.base_url == "https://data.test"
    assert config.polygon_rpc.url == "https://rpc.test"
    assert config.output_dir == tmp_path / "out"
    assert config.traders_csv == Path("data/tier1_traders.csv")


def test_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(f"TRADERS_CSV={tmp_path / 'list.csv'}\n")
    monkeypatch.chdir(tmp_path)

    config = load_config(tmp_path / "missing.json", env_file=env_file)
    assert config.traders_csv == tmp_path / "list.csv"
