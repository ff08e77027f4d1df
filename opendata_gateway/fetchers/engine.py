"""
Fetch engine for the open-data portal.

Runs one endpoint request through cache lookup, rate limiting, the HTTP
call, status handling and decoding. Decode problems and "no data" answers
are absorbed into empty (or stale cached) results; only exhausted retries,
unrecovered throttling and server errors reach the caller.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import aiohttp

from opendata_gateway.config import GatewaySettings, DEFAULT_SETTINGS
from opendata_gateway.errors import (
    CancelledRequestError,
    DecodeError,
    InvalidRequestError,
    NetworkError,
    ServerError,
    ThrottledError,
)
from opendata_gateway.fetchers.base import BaseFetcher, TokenProvider
from opendata_gateway.fetchers.endpoints import Endpoint, to_url
from opendata_gateway.fetchers.rate_limiter import RateLimiter
from opendata_gateway.storage.cache import TieredCache

logger = logging.getLogger(__name__)

# Failures worth retrying after a short pause
TRANSIENT_ERRORS = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    asyncio.TimeoutError,
)

FetchListener = Callable[[Endpoint, List[Any]], None]


class FetchState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    ERROR = "error"
    RATE_LIMITED = "rate_limited"


@dataclass
class EndpointStatus:
    """Last known state of one endpoint."""

    state: FetchState
    updated_at: datetime
    error: str = ""


def _caller_cancelled() -> bool:
    """True when the running task itself has a pending cancellation."""
    task = asyncio.current_task()
    if task is None:
        return True
    return task.cancelling() > 0


class FetchEngine(BaseFetcher):
    """
    Cache-aware, rate-limited fetcher with resilient decoding.

    The engine owns the cache and rate limiter for its lifetime. It is safe
    for concurrent use: two concurrent misses on the same key both go to the
    network and the last writer's value stays cached.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        cache: Optional[TieredCache] = None,
        limiter: Optional[RateLimiter] = None,
        settings: GatewaySettings = DEFAULT_SETTINGS,
        token_provider: Optional[TokenProvider] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        """
        Initialize fetch engine.

        Args:
            session: aiohttp session (or any object with the same get() API)
            cache: Cache for decoded results
            limiter: Shared rate limiter
            settings: Gateway settings
            token_provider: Callable returning the application token
            sleep: Coroutine used for retry delays (injectable for tests)
        """
        super().__init__(settings, token_provider)
        self.session = session
        self.cache = cache if cache is not None else TieredCache()
        self.limiter = limiter or RateLimiter(settings.min_interval, settings.max_interval)
        self._sleep = sleep
        self._listeners: List[FetchListener] = []
        self.status: Dict[str, EndpointStatus] = {}
        self.last_sync: Optional[datetime] = None

    def subscribe(self, listener: FetchListener) -> None:
        """Register a callback run with (endpoint, records) after each network fetch."""
        self._listeners.append(listener)

    async def fetch(self, endpoint: Endpoint) -> list:
        """
        Fetch and decode the records for an endpoint.

        Args:
            endpoint: Endpoint to fetch

        Returns:
            List of decoded records (possibly empty)

        Raises:
            InvalidRequestError: If the endpoint URL is malformed
            ThrottledError: If every attempt was answered with 429
            ServerError: On 5xx, an unexpected 4xx or a protocol failure such as a redirect loop
            NetworkError: If transient failures exhausted every attempt
            CancelledRequestError: If every attempt was cancelled underneath us
        """
        key = endpoint.cache_key
        self._set_status(key, FetchState.FETCHING)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            self._set_status(key, FetchState.SUCCESS)
            return list(cached)

        url = to_url(endpoint, self.settings.api_host)
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            self._set_status(key, FetchState.ERROR, "invalid url")
            raise InvalidRequestError(url)

        max_attempts = self.settings.max_attempts
        throttled = 0
        failures = 0

        while True:
            await self.limiter.acquire()
            try:
                status, body = await self._send(url)
            except asyncio.CancelledError:
                if _caller_cancelled():
                    self._set_status(key, FetchState.IDLE)
                    raise
                failures += 1
                logger.warning(f"Request cancelled for {key} (attempt {failures}/{max_attempts})")
                if failures >= max_attempts:
                    self._set_status(key, FetchState.ERROR, "cancelled")
                    raise CancelledRequestError(f"{key}: cancelled on {failures} attempts") from None
            except aiohttp.InvalidURL as e:
                self._set_status(key, FetchState.ERROR, "invalid url")
                raise InvalidRequestError(url) from e
            except aiohttp.ClientResponseError as e:
                # Redirect loops, malformed status lines
                self._set_status(key, FetchState.ERROR, type(e).__name__)
                logger.error(f"{type(e).__name__} for {key} (status {e.status})")
                raise ServerError(e.status, f"{endpoint.kind.value}: {type(e).__name__}") from e
            except TRANSIENT_ERRORS as e:
                failures += 1
                logger.warning(f"Transient error for {key} (attempt {failures}/{max_attempts}): {e!r}")
                if failures >= max_attempts:
                    self._set_status(key, FetchState.ERROR, repr(e))
                    logger.error(f"Giving up on {key} after {failures} attempts")
                    raise NetworkError(f"{key}: {e!r}") from e
            else:
                if status == 429:
                    throttled += 1
                    self.limiter.register_throttle()
                    self._set_status(key, FetchState.RATE_LIMITED)
                    if throttled >= max_attempts:
                        logger.error(f"Still throttled on {key} after {throttled} attempts")
                        raise ThrottledError(throttled)
                    continue
                # A retry that got through after 429 keeps the backoff in place
                if throttled == 0:
                    self.limiter.register_success()
                return self._handle_response(endpoint, key, status, body)

            await self._sleep(self.settings.retry_delay)

    async def _send(self, url: str) -> tuple:
        """Send one GET request. Returns (status, raw body bytes)."""
        async with self.session.get(
            url,
            headers=self.get_headers(),
            timeout=self.timeout
        ) as resp:
            return resp.status, await resp.read()

    def _handle_response(self, endpoint: Endpoint, key: str, status: int, body: bytes) -> list:
        if status == 200:
            return self._decode(endpoint, key, body)

        if status == 404:
            # No rows is normal for these datasets
            self._set_status(key, FetchState.SUCCESS)
            return []

        if status == 400:
            # Usually a filter the dataset rejects; keep dependents from dropping to zero
            stale = self.cache.get_stale(key)
            self._set_status(key, FetchState.ERROR, "HTTP 400")
            if stale is not None:
                logger.warning(f"HTTP 400 for {key}, using cached value")
                return list(stale)
            logger.warning(f"HTTP 400 for {key}, no cached value")
            return []

        self._set_status(key, FetchState.ERROR, f"HTTP {status}")
        logger.error(f"HTTP {status} for {key}")
        raise ServerError(status, endpoint.kind.value)

    def _decode(self, endpoint: Endpoint, key: str, body: bytes) -> list:
        record_type = endpoint.record_type
        try:
            payload = json.loads(body)
        except ValueError as e:
            # Includes UnicodeDecodeError for bodies that are not UTF-8
            logger.warning(f"Unparseable body for {key}: {e}")
            payload = None

        try:
            records = record_type.decode_rows(payload)
        except DecodeError as e:
            logger.warning(f"Strict decode failed for {key}: {e}; trying lenient decode")
            records = record_type.decode_rows_lenient(payload)
            if not records:
                self._set_status(key, FetchState.ERROR, str(e))
                stale = self.cache.get_stale(key)
                if stale is not None:
                    logger.warning(f"Lenient decode empty for {key}, using cached value")
                    return list(stale)
                logger.warning(f"Lenient decode empty for {key}, returning no records")
                return []
            logger.info(f"Lenient decode recovered {len(records)} records for {key}")

        self.cache.set(key, tuple(records), self.settings.ttl_for(endpoint.tier))
        self._set_status(key, FetchState.SUCCESS)
        self.last_sync = datetime.now()
        self._notify(endpoint, records)
        return list(records)

    def _notify(self, endpoint: Endpoint, records: list) -> None:
        for listener in self._listeners:
            try:
                listener(endpoint, list(records))
            except Exception:
                logger.exception(f"Fetch listener failed for {endpoint.cache_key}")

    def _set_status(self, key: str, state: FetchState, error: str = "") -> None:
        self.status[key] = EndpointStatus(state=state, updated_at=datetime.now(), error=error)
