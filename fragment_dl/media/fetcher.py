"""
Handles the low-level fetching of stream fragments over HTTP with bounded,
exponentially backed-off retries.
"""

import asyncio
import logging
import random
from collections.abc import Callable, Mapping

import aiohttp

from fragment_dl.exceptions import ExhaustedRetriesError, TransientFetchError
from fragment_dl.models.config import RetryPolicy
from fragment_dl.models.fragments import FragmentResult, FragmentTask

log = logging.getLogger(__name__)

RetryHook = Callable[[int, int, float, BaseException], None]


class RetryingFetcher:
    """
    Fetches fragment payloads with retry logic over a shared connection pool.

    Every transport failure (connection error, timeout, non-2xx status) is treated
    as retryable. The connection pool is the only state shared between concurrent
    calls to :meth:`fetch`.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        max_connections: int = 50,
        attempt_timeout: float = 60.0,
        headers: Mapping[str, str] | None = None,
        on_retry: RetryHook | None = None,
        rng: random.Random | None = None,
    ):
        """
        Args:
            policy: Backoff and attempt limits applied to every fragment.
            max_connections: Size of the connection pool; should match the
                concurrency bound.
            attempt_timeout: Deadline in seconds for a single attempt, body included.
            headers: Extra request headers, e.g. authorization set by the caller.
            on_retry: Called as ``(index, retry, delay, cause)`` before each backoff.
            rng: Random source for jitter.
        """
        self.policy = policy
        self.max_connections = max_connections
        self.attempt_timeout = attempt_timeout
        self.headers = dict(headers or {})
        self.on_retry = on_retry
        self._rng = rng
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or lazily creates the pooled aiohttp ClientSession."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                return self._session

            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections,
                ttl_dns_cache=600,  # 10 minutes
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(
                    total=self.attempt_timeout, sock_connect=15
                ),
                headers=self.headers,
            )
            log.debug(f"Created fragment pool with limit={self.max_connections}")
            return self._session

    async def close(self) -> None:
        """Closes the connection pool."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
                log.debug("Fragment connection pool closed.")
            self._session = None

    async def __aenter__(self) -> "RetryingFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, task: FragmentTask) -> FragmentResult:
        """
        Downloads one fragment, retrying transient failures per the policy.

        Raises:
            ExhaustedRetriesError: If all ``max_retries + 1`` attempts failed.
        """
        last_error: TransientFetchError | None = None
        for attempt in range(1, self.policy.max_attempts + 1):
            if last_error is not None:
                retry = attempt - 1
                delay = self.policy.delay_for(retry, self._rng)
                if self.on_retry:
                    self.on_retry(task.index, retry, delay, last_error.cause)
                await asyncio.sleep(delay)

            try:
                payload = await self._fetch_once(task.url)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = TransientFetchError(task.index, attempt, e)
                log.debug(
                    f"Fragment #{task.index} attempt {attempt}/"
                    f"{self.policy.max_attempts} failed: {e!r}"
                )
                continue

            return FragmentResult(task.index, payload, attempts=attempt)

        raise ExhaustedRetriesError(
            task.index,
            self.policy.max_attempts,
            last_error.cause if last_error else None,
        ) from last_error

    async def _fetch_once(self, url: str) -> bytes:
        session = await self._get_session()
        async with session.get(url, allow_redirects=True) as response:
            response.raise_for_status()
            return await response.read()
