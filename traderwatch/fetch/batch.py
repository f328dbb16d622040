"""Concurrency-bounded batch fetcher.

A FIFO queue feeds a fixed pool of worker tasks, so at most ``concurrency``
fetches are in flight. Each address ends in exactly one ``FetchResult``;
a failing fetch is recorded, never raised.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Iterable, Optional, TypeVar

from traderwatch.errors import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "FetchResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "FetchResult[T]":
        return cls(success=False, error=error)


async def batch_fetch(
    addresses: Iterable[str],
    fetch_fn: Callable[[str], Awaitable[T]],
    concurrency: int = 5,
) -> Dict[str, FetchResult[T]]:
    """Run ``fetch_fn`` for every address with at most ``concurrency`` in flight.

    Args:
        addresses: Keys to fetch. Duplicates are fetched once.
        fetch_fn: Coroutine function taking one address.
        concurrency: Maximum number of simultaneously active fetches.

    Returns:
        Mapping address -> FetchResult, one entry per distinct address,
        in input order whatever order the fetches complete in.
    """
    if concurrency < 1:
        raise ConfigError(f"concurrency must be >= 1, got {concurrency}")

    keys = list(dict.fromkeys(addresses))
    results: Dict[str, FetchResult[T]] = {}
    if not keys:
        return results

    queue: asyncio.Queue[str] = asyncio.Queue()
    for key in keys:
        queue.put_nowait(key)

    async def worker() -> None:
        while True:
            try:
                key = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                data = await fetch_fn(key)
                results[key] = FetchResult.ok(data)
            except Exception as e:
                logger.error(f"Failed to fetch for {key}: {e}")
                results[key] = FetchResult.failed(str(e) or type(e).__name__)

    workers = [asyncio.create_task(worker()) for _ in range(min(concurrency, len(keys)))]
    await asyncio.gather(*workers)

    logger.debug(
        f"Batch done: {sum(1 for r in results.values() if r.success)}/{len(keys)} succeeded"
    )
    return {key: results[key] for key in keys}
