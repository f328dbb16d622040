"""Central configuration for the trader watch engine.

Run options come from a JSON file (``config.json`` by default) layered over
frozen-dataclass defaults; paths and the upstream URL can be overridden from
the environment or a ``.env`` file.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

from dotenv import load_dotenv

from traderwatch.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataAPIConfig:
    base_url: str = "https://data-api.polymarket.com"
    timeout: float = 30.0


@dataclass(frozen=True)
class PolygonRPCConfig:
    url: str = "https://polygon-rpc.com"
    timeout: float = 30.0
    # Native USDC and bridged USDC.e; a wallet's cash is the sum of both.
    usdc_contracts: tuple[str, ...] = (
        "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
        "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    )


def _coerce(key: str, value, target: type):
    """Parse one option; bools and non-integral floats for int options are errors."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid value for {key}: {value!r}")
    if target is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"Invalid value for {key}: {value!r} is not a whole number")
    try:
        return target(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e


@dataclass(frozen=True)
class EngineConfig:
    poll_interval_seconds: int = 300
    max_recent_events: int = 200
    min_usd_filter: float = 0.0
    concurrency_limit: int = 5
    retry_attempts: int = 3
    retry_base_delay_ms: int = 1000
    activity_limit_per_trader: int = 500
    activity_lookback_days: int = 30
    positions_limit: int = 1000

    def __post_init__(self):
        if self.concurrency_limit < 1:
            raise ConfigError(f"concurrency_limit must be >= 1, got {self.concurrency_limit}")
        if self.retry_attempts < 1:
            raise ConfigError(f"retry_attempts must be >= 1, got {self.retry_attempts}")
        if self.retry_base_delay_ms < 0:
            raise ConfigError(f"retry_base_delay_ms must be >= 0, got {self.retry_base_delay_ms}")
        if self.max_recent_events < 0:
            raise ConfigError(f"max_recent_events must be >= 0, got {self.max_recent_events}")
        if self.min_usd_filter < 0:
            raise ConfigError(f"min_usd_filter must be >= 0, got {self.min_usd_filter}")
        if self.poll_interval_seconds < 1:
            raise ConfigError(f"poll_interval_seconds must be >= 1, got {self.poll_interval_seconds}")

    @property
    def retry_base_delay(self) -> float:
        """Base backoff delay in seconds."""
        return self.retry_base_delay_ms / 1000.0

    @classmethod
    def from_dict(cls, raw: dict) -> "EngineConfig":
        """Build from a loosely-typed mapping, ignoring unknown keys.

        ``null`` values fall back to the default for that option.
        """
        if not isinstance(raw, dict):
            raise ConfigError(f"Config must be a JSON object, got {type(raw).__name__}")

        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, value in raw.items():
            if key not in known:
                logger.debug(f"Ignoring unknown config option: {key}")
                continue
            if value is None:
                continue
            kwargs[key] = _coerce(key, value, float if key == "min_usd_filter" else int)

        return cls(**kwargs)


@dataclass
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    data_api: DataAPIConfig = field(default_factory=DataAPIConfig)
    polygon_rpc: PolygonRPCConfig = field(default_factory=PolygonRPCConfig)
    traders_csv: Path = Path("data/tier1_traders.csv")
    output_dir: Path = Path("docs/data")


def load_engine_config(config_path: Path | None) -> EngineConfig:
    """Read engine options from a JSON file. Missing file means defaults."""
    if config_path is None or not config_path.exists():
        logger.info("No config file found, using defaults")
        return EngineConfig()

    try:
        with open(config_path) as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e

    return EngineConfig.from_dict(raw)


def load_config(
    config_path: Path | None = None,
    env_file: Path | None = None,
) -> AppConfig:
    """Load configuration from config.json + environment variables.

    Args:
        config_path: Path to the JSON options file. If None, uses
            ``TRADERWATCH_CONFIG`` or ``config.json`` in the working directory.
        env_file: Path to .env file. If None, searches project root.
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
    else:
        for candidate in [Path(".env"), Path(__file__).parent.parent / ".env"]:
            if candidate.exists():
                load_dotenv(candidate)
                break

    if config_path is None:
        config_path = Path(os.environ.get("TRADERWATCH_CONFIG", "config.json"))

    config = AppConfig(engine=load_engine_config(config_path))

    data_api_url = os.environ.get("DATA_API_URL")
    if data_api_url:
        config.data_api = replace(config.data_api, base_url=data_api_url)
    rpc_url = os.environ.get("POLYGON_RPC_URL")
    if rpc_url:
        config.polygon_rpc = replace(config.polygon_rpc, url=rpc_url)
    if os.environ.get("TRADERS_CSV"):
        config.traders_csv = Path(os.environ["TRADERS_CSV"])
    if os.environ.get("OUTPUT_DIR"):
        config.output_dir = Path(os.environ["OUTPUT_DIR"])

    return config
