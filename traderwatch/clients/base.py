"""Base API client with retry logic and exponential backoff."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from traderwatch.errors import (
    MalformedResponseError,
    PermanentUpstreamError,
    TransientUpstreamError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryEvent:
    """Reported to the ``on_retry`` observer before each backoff sleep."""
    url: str
    attempt: int  # 1-based number of the attempt that just failed
    delay: float  # seconds
    error: TransientUpstreamError


class BaseAPIClient:
    """Async JSON client that retries 429, 5xx and network failures.

    ``retry_attempts`` is the total number of attempts. Before retry ``n``
    (0-based) the client sleeps ``retry_base_delay * 2**n`` seconds.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        on_retry: Optional[Callable[[RetryEvent], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.on_retry = on_retry
        self._transport = transport
        self._sleep = sleep
        self.client: Optional[httpx.AsyncClient] = None
        self._request_count = 0

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "User-Agent": "TraderWatch/1.0",
                "Accept": "application/json",
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None

    @property
    def request_count(self) -> int:
        """Number of HTTP requests sent, retries included."""
        return self._request_count

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(TransientUpstreamError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_base_delay, exp_base=2, min=0),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"{error} (attempt {retry_state.attempt_number}/{self.retry_attempts}), "
            f"retrying in {delay:.2f}s"
        )
        if self.on_retry is not None:
            self.on_retry(RetryEvent(
                url=error.url,
                attempt=retry_state.attempt_number,
                delay=delay,
                error=error,
            ))

    async def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Single HTTP attempt, mapping failures onto the FetchError types."""
        self._request_count += 1
        try:
            response = await self.client.request(method=method, url=url, params=params, json=json)
        except httpx.TransportError as e:
            raise TransientUpstreamError(f"Request failed for {url}: {e!r}", url=url) from e

        status = response.status_code
        if status == 429:
            raise TransientUpstreamError(f"Rate limited on {url}", url=url, status=status)
        if status >= 500:
            raise TransientUpstreamError(f"Server error {status} on {url}", url=url, status=status)
        if not response.is_success:
            raise PermanentUpstreamError(
                f"HTTP {status}: {response.reason_phrase} on {url}",
                url=url,
                status=status,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Failed to decode JSON from {url}", url=url, status=status) from e

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Make HTTP request with retry logic."""
        if not self.client:
            raise RuntimeError("Client not initialized. Use async context manager.")

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        return await self._retrying()(self._send, method, url, params, json)

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make GET request."""
        return await self._request("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json: Optional[Any] = None,
    ) -> Any:
        """Make POST request with a JSON body."""
        return await self._request("POST", endpoint, json=json)
