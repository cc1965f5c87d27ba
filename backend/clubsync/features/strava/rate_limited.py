"""
Rate-limited Strava request client.

Every outbound Strava call (API and OAuth) goes through one shared
RateLimitedClient per process so the rate-limit counters stay correct
for both scheduled and manual sync runs.

How a request flows:
- submit() assigns a queue position and appends the request to a deque
- a single dispatcher task pops from the front while a concurrency slot
  is free, waiting for the rate-limit window to reset when Strava says
  we are nearly out of calls
- each attempt updates RateLimitState from the response headers
- retryable failures (network, 429, 5xx) go back to the FRONT of the
  queue after an exponential backoff, which does not hold a concurrency
  slot; terminal ones reach the caller
- after every attempt the slot is held for min_interval before release

Strava API Limits:
- 200 requests per 15 minutes
- 2,000 requests per day
"""

import asyncio
import logging
import random
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import httpx

from .errors import (
    StravaError,
    TransientNetworkError,
    RateLimitedError,
    UpstreamServerError,
    TerminalClientError,
    CredentialExpiredError,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Strava's short-term window is 15 minutes, aligned to the quarter hour
SHORT_WINDOW_SECONDS = 15 * 60


# =============================================================================
# Request / State
# =============================================================================

@dataclass
class RequestDescriptor:
    """Everything needed to (re)send one HTTP request."""

    method: str
    url: str
    params: Optional[dict] = None
    data: Optional[dict] = None
    json: Optional[Any] = None
    headers: Optional[dict] = None

    def describe(self) -> str:
        return f"{self.method} {self.url}"


@dataclass
class RateLimitState:
    """
    Last rate-limit information reported by Strava.

    Owned by the client; only the event loop running the client mutates it.
    `reset_at` is a unix timestamp.
    """

    remaining: Optional[int] = None
    limit: Optional[int] = None
    reset_at: Optional[float] = None
    updated_at: Optional[float] = None

    def is_exhausted(self, low_water_mark: int, now: float) -> bool:
        if self.remaining is None or self.reset_at is None:
            return False
        return self.remaining < low_water_mark and self.reset_at > now

    def snapshot(self) -> dict:
        def _iso(ts: Optional[float]) -> Optional[str]:
            if ts is None:
                return None
            return datetime.fromtimestamp(ts, timezone.utc).isoformat()

        return {
            "remaining": self.remaining,
            "limit": self.limit,
            "reset_at": _iso(self.reset_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class _QueueItem:
    position: int
    descriptor: RequestDescriptor
    future: asyncio.Future
    retry_count: int = 0


# =============================================================================
# Client
# =============================================================================

class RateLimitedClient:
    """
    Queue + concurrency cap + backoff in front of httpx.AsyncClient.

    Usage:
        client = RateLimitedClient(base_url="https://www.strava.com/api/v3")
        events = await client.get_json("/clubs/123/group_events", token=access_token)
        await client.aclose()

    sleep, clock (unix seconds) and jitter (0 <= x < 1) are injectable so
    tests can run without waiting.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        concurrency: int = 2,
        max_retries: int = 5,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        min_interval: float = 0.5,
        low_water_mark: int = 5,
        reset_buffer: float = 1.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        jitter: Callable[[], float] = random.random,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.concurrency = concurrency
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.min_interval = min_interval
        self.low_water_mark = low_water_mark
        self.reset_buffer = reset_buffer

        self._sleep = sleep
        self._clock = clock
        self._jitter = jitter

        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self.rate_limit = RateLimitState()

        self._queue: deque[_QueueItem] = deque()
        self._position = 0
        self._slots = asyncio.Semaphore(concurrency)
        self._in_flight = 0
        self._dispatcher: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @classmethod
    def from_settings(cls, settings, **overrides) -> "RateLimitedClient":
        """Build the process-wide client from application settings."""
        options = dict(
            base_url=settings.strava_api_url,
            concurrency=settings.api_concurrency,
            max_retries=settings.api_max_retries,
            base_delay=settings.api_base_delay_seconds,
            max_delay=settings.api_max_delay_seconds,
            min_interval=settings.api_min_interval_seconds,
            low_water_mark=settings.api_low_water_mark,
            reset_buffer=settings.api_reset_buffer_seconds,
            timeout=settings.api_timeout_seconds,
        )
        options.update(overrides)
        return cls(**options)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def submit(self, descriptor: RequestDescriptor) -> httpx.Response:
        """
        Queue a request and wait for its final outcome.

        Returns:
            The successful httpx.Response

        Raises:
            TerminalClientError / CredentialExpiredError: on the first 4xx
            TransientNetworkError / RateLimitedError / UpstreamServerError:
                when retries are exhausted
        """
        if self._closed:
            raise RuntimeError("RateLimitedClient is closed")

        future = asyncio.get_running_loop().create_future()
        self._position += 1
        self._queue.append(_QueueItem(self._position, descriptor, future))
        self._ensure_dispatcher()
        return await future

    async def get_json(
        self,
        url: str,
        token: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """GET a JSON resource, optionally with a bearer token."""
        headers = {"Authorization": f"Bearer {token}"} if token else None
        response = await self.submit(
            RequestDescriptor("GET", url, params=params, headers=headers)
        )
        return response.json()

    async def post_json(self, url: str, data: Optional[dict] = None) -> Any:
        """POST form data and decode the JSON answer."""
        response = await self.submit(RequestDescriptor("POST", url, data=data))
        return response.json()

    def backoff_delay(self, retry_count: int) -> float:
        """Delay before retry number `retry_count + 1`."""
        delay = self.base_delay * (2 ** retry_count) + self._jitter() * self.base_delay
        return min(self.max_delay, delay)

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def snapshot(self) -> dict:
        """Rate-limit and queue state for the sync status endpoint."""
        return {
            **self.rate_limit.snapshot(),
            "queue_size": self.queue_size,
            "in_flight": self._in_flight,
            "concurrency": self.concurrency,
        }

    async def aclose(self) -> None:
        """Cancel queued requests and close the HTTP connection pool."""
        self._closed = True
        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()
        for task in list(self._tasks):
            task.cancel()
        while self._queue:
            item = self._queue.popleft()
            if not item.future.done():
                item.future.cancel()
        await self._http.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Dispatch loop
    # -------------------------------------------------------------------------

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch_loop())

    async def _dispatch_loop(self) -> None:
        while self._queue:
            await self._slots.acquire()
            try:
                await self._respect_rate_limit()
            except BaseException:
                self._slots.release()
                raise

            if not self._queue:
                self._slots.release()
                break

            item = self._queue.popleft()
            if item.future.done():
                # Caller went away (cancelled) while queued
                self._slots.release()
                continue

            task = asyncio.create_task(self._execute(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _respect_rate_limit(self) -> None:
        now = self._clock()
        if not self.rate_limit.is_exhausted(self.low_water_mark, now):
            return

        delay = self.rate_limit.reset_at - now + self.reset_buffer
        logger.warning(
            f"Strava rate limit nearly exhausted "
            f"({self.rate_limit.remaining} calls left), waiting {delay:.1f}s for reset"
        )
        await self._sleep(delay)
        # Counters belong to the old window now
        self.rate_limit.remaining = None
        self.rate_limit.reset_at = None

    async def _execute(self, item: _QueueItem) -> None:
        retry_delay = None
        self._in_flight += 1
        try:
            try:
                response = await self._send(item.descriptor)
            except StravaError as exc:
                retry_delay = self._handle_failure(item, exc)
            else:
                if not item.future.done():
                    item.future.set_result(response)
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as exc:
            logger.exception(f"Unexpected error sending {item.descriptor.describe()}")
            if not item.future.done():
                item.future.set_exception(exc)
        finally:
            self._in_flight -= 1
            try:
                if self.min_interval > 0:
                    await self._sleep(self.min_interval)
            finally:
                self._slots.release()

        # Backoff happens outside the slot so other requests keep flowing
        if retry_delay is not None:
            await self._requeue_after(item, retry_delay)

    async def _send(self, descriptor: RequestDescriptor) -> httpx.Response:
        request = self._http.build_request(
            descriptor.method,
            descriptor.url,
            params=descriptor.params,
            data=descriptor.data,
            json=descriptor.json,
            headers=descriptor.headers,
        )
        try:
            response = await self._http.send(request)
        except httpx.TransportError as exc:
            raise TransientNetworkError(
                f"{descriptor.describe()} failed without response: {exc!r}"
            ) from exc

        self._update_rate_limit(response.headers)

        status = response.status_code
        if status < 400:
            return response

        message = f"Strava {descriptor.describe()} returned {status}"
        if status == 429:
            raise RateLimitedError(message, status)
        if status >= 500:
            raise UpstreamServerError(message, status)
        if status == 401:
            raise CredentialExpiredError(message, status)
        raise TerminalClientError(f"{message}: {response.text[:200]}", status)

    def _handle_failure(self, item: _QueueItem, exc: StravaError) -> Optional[float]:
        """Fail the request, or return the backoff delay before its retry."""
        if not exc.retryable or item.retry_count >= self.max_retries:
            if exc.retryable:
                logger.error(
                    f"Giving up on {item.descriptor.describe()} "
                    f"after {item.retry_count} retries: {exc}"
                )
            if not item.future.done():
                item.future.set_exception(exc)
            return None

        delay = self.backoff_delay(item.retry_count)
        logger.warning(
            f"{exc} (request #{item.position}, retry {item.retry_count + 1}/"
            f"{self.max_retries}), retrying in {delay:.1f}s"
        )
        return delay

    async def _requeue_after(self, item: _QueueItem, delay: float) -> None:
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        item.retry_count += 1

        if item.future.done():
            return
        if self._closed:
            item.future.cancel()
            return
        self._queue.appendleft(item)
        self._ensure_dispatcher()

    # -------------------------------------------------------------------------
    # Rate-limit headers
    # -------------------------------------------------------------------------

    def _update_rate_limit(self, headers: httpx.Headers) -> None:
        """
        Read rate-limit headers from any response.

        Generic `X-RateLimit-Remaining` / `X-RateLimit-Reset` win. Otherwise
        Strava's `X-RateLimit-Limit: 200,2000` / `X-RateLimit-Usage: 12,340`
        pairs are turned into calls left in the 15 minute window.
        """
        now = self._clock()
        remaining = headers.get("x-ratelimit-remaining")

        try:
            if remaining is not None:
                self.rate_limit.remaining = int(remaining.split(",")[0])
                reset = headers.get("x-ratelimit-reset")
                if reset is not None:
                    reset_value = float(reset)
                    # Small values are "seconds from now", large ones are epoch
                    if reset_value < 1e9:
                        reset_value = now + reset_value
                    self.rate_limit.reset_at = reset_value
                self.rate_limit.updated_at = now
                return

            limit = headers.get("x-ratelimit-limit")
            usage = headers.get("x-ratelimit-usage")
            if limit is None or usage is None:
                return

            short_limit = int(limit.split(",")[0])
            short_usage = int(usage.split(",")[0])
            self.rate_limit.limit = short_limit
            self.rate_limit.remaining = max(0, short_limit - short_usage)
            self.rate_limit.reset_at = (now // SHORT_WINDOW_SECONDS + 1) * SHORT_WINDOW_SECONDS
            self.rate_limit.updated_at = now
        except ValueError:
            logger.debug(f"Ignoring malformed rate-limit headers: {dict(headers)}")
