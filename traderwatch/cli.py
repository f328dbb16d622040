"""Command line interface for the trader watch data refresh.

Usage:
    python main.py refresh
    python main.py refresh --config config.json --traders data/tier1_traders.csv --out docs/data
    python main.py watch            # refresh every poll_interval_seconds
"""
from __future__ import annotations

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click

from traderwatch import __version__
from traderwatch.clients import DataAPIClient, PolygonRPCClient
from traderwatch.config import AppConfig, load_config
from traderwatch.errors import ConfigError, TraderListError, TraderWatchError
from traderwatch.pipeline import RunResult, run_refresh
from traderwatch.storage import load_traders, write_documents

logger = logging.getLogger(__name__)

RULE = "=" * 55


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _load(config_path: Optional[Path], traders_csv: Optional[Path], out: Optional[Path]) -> AppConfig:
    config = load_config(config_path=config_path)
    if traders_csv:
        config.traders_csv = traders_csv
    if out:
        config.output_dir = out
    return config


def refresh_once(config: AppConfig) -> RunResult:
    """Load traders, run the engine, and write the four documents."""
    traders = load_traders(config.traders_csv)

    async def _run() -> RunResult:
        async with DataAPIClient(config.data_api, config.engine) as client, \
                PolygonRPCClient(config.polygon_rpc, config.engine) as rpc:
            return await run_refresh(traders, config.engine, client, rpc=rpc)

    result = asyncio.run(_run())
    write_documents(config.output_dir, result.documents())
    return result


def _echo_summary(result: RunResult) -> None:
    meta = result.metadata
    click.echo(f"\n{RULE}\n  Summary\n{RULE}")
    click.echo(f"  Traders tracked: {meta.trader_count}")
    click.echo(f"  Traders fetched: {meta.traders_fetched}")
    click.echo(f"  Markets held: {meta.market_count}")
    click.echo(f"  Total exposure: ${meta.total_exposure:,.2f}")
    click.echo(f"  Recent activities: {meta.activity_count}")
    click.echo(f"  Last updated: {meta.last_updated}")
    click.echo(RULE)

    failed = [p for p in result.trader_portfolios.values() if not p.fetch_success]
    for p in failed:
        click.echo(f"  Error: no data for {p.label} ({p.address})", err=True)


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="JSON options file (default: $TRADERWATCH_CONFIG or ./config.json)",
)
traders_option = click.option(
    "--traders",
    "traders_csv",
    type=click.Path(path_type=Path),
    default=None,
    help="Trader list CSV with address,label,tier columns",
)
out_option = click.option(
    "--out",
    type=click.Path(path_type=Path),
    default=None,
    help="Output directory for the JSON documents",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging (DEBUG level)",
)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Tier-1 trader watch: fetch trader positions and build aggregated views."""
    pass


@cli.command()
@config_option
@traders_option
@out_option
@verbose_option
def refresh(
    config_path: Optional[Path],
    traders_csv: Optional[Path],
    out: Optional[Path],
    verbose: bool,
):
    """Run one data refresh and write the output documents."""
    _setup_logging(verbose)

    try:
        config = _load(config_path, traders_csv, out)
        click.echo(f"{RULE}\n  Trader Watch - Data Refresh\n{RULE}")
        click.echo(f"Traders: {config.traders_csv}")
        click.echo(f"Output directory: {config.output_dir}")
        result = refresh_once(config)
    except KeyboardInterrupt:
        click.echo("\nRefresh interrupted by user", err=True)
        sys.exit(130)
    except TraderWatchError as e:
        click.echo(f"\nFailed to refresh data: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"\nFailed to refresh data: {e}", err=True)
        logger.exception("Refresh failed")
        sys.exit(1)

    _echo_summary(result)
    click.echo("\nData refresh completed successfully!")


@cli.command()
@config_option
@traders_option
@out_option
@verbose_option
def watch(
    config_path: Optional[Path],
    traders_csv: Optional[Path],
    out: Optional[Path],
    verbose: bool,
):
    """Refresh repeatedly, every poll_interval_seconds.

    A failed run is logged and the next one still happens on schedule;
    config and trader-list errors stop the loop.
    """
    _setup_logging(verbose)

    try:
        config = _load(config_path, traders_csv, out)
    except TraderWatchError as e:
        click.echo(f"Failed to load configuration: {e}", err=True)
        sys.exit(1)

    interval = config.engine.poll_interval_seconds
    click.echo(f"Refreshing every {interval}s into {config.output_dir} (Ctrl+C to stop)")

    try:
        while True:
            started = time.monotonic()
            try:
                result = refresh_once(config)
                _echo_summary(result)
            except (ConfigError, TraderListError) as e:
                click.echo(f"Failed to refresh data: {e}", err=True)
                sys.exit(1)
            except Exception:
                logger.exception("Refresh failed, will retry next interval")

            elapsed = time.monotonic() - started
            time.sleep(max(0.0, interval - elapsed))
    except KeyboardInterrupt:
        click.echo("\nStopped.")
