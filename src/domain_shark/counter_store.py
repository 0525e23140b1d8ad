"""
Counter Store module for admission-control state.

This module provides the get/put-with-expiry abstraction every stateful gate
is built on, an in-process backend for development and tests, and a Redis
backend for deployments with more than one worker. Backends signal failure
by raising StoreError; gates translate that into a fail-open default.
"""

import json
import time
from abc import abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, runtime_checkable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .exceptions import StoreError


@runtime_checkable
class CounterStore(Protocol):
    """Protocol defining the interface for counter-store backends."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a serialized value.

        Returns:
            The stored value, or None if the key is absent or expired

        Raises:
            StoreError: If the backend is unavailable
        """
        ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """
        Write a serialized value that expires after ttl_seconds.

        Raises:
            StoreError: If the backend is unavailable
        """
        ...


def decode_count(raw: Optional[str]) -> int:
    """
    Decode a stored counter value.

    Args:
        raw: Serialized value as returned by CounterStore.get

    Returns:
        The counter, 0 for a missing key

    Raises:
        StoreError: If the stored value is malformed
    """
    if raw is None:
        return 0

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise StoreError("Stored counter is not valid JSON") from e

    if not isinstance(data, dict):
        raise StoreError("Stored counter is not an object")

    count = data.get("count", 0)
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise StoreError("Stored counter has an invalid count")

    return count


def encode_count(count: int) -> str:
    """Serialize a counter value for storage."""
    return json.dumps({"count": count})


# Every key embeds its time bucket, so expiry alone reclaims old counters.

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def minute_bucket(now: datetime) -> int:
    """Whole minutes since the Unix epoch."""
    return int(now.timestamp() // 60)


def month_bucket(now: datetime) -> str:
    """Calendar month in UTC as YYYY-MM."""
    return now.astimezone(timezone.utc).strftime("%Y-%m")


def rate_key(client: str, bucket: int) -> str:
    return f"rate:{client}:{bucket}"


def quota_key(client: str, month: str) -> str:
    return f"quota:{client}:{month}"


def circuit_key(month: str) -> str:
    return f"circuit:{month}"


class MemoryCounterStore:
    """
    In-process counter store backed by a plain dict.

    Expiry is evaluated on read using the injected clock, and writes sweep
    out every expired key at most once per ``SWEEP_INTERVAL_SECONDS``. The
    ``fail_reads`` and ``fail_writes`` switches simulate a backend outage.
    """

    SWEEP_INTERVAL_SECONDS = 60

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        self._last_sweep = clock()
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StoreError("Counter store read failed", {"backend": "memory"})

        item = self._data.get(key)
        if item is None:
            return None

        value, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.fail_writes:
            raise StoreError("Counter store write failed", {"backend": "memory"})

        now = self._clock()
        if now - self._last_sweep >= self.SWEEP_INTERVAL_SECONDS:
            self._sweep(now)
        self._data[key] = (value, now + ttl_seconds)

    def _sweep(self, now: float) -> None:
        # Minute buckets are never read again once their minute is over
        expired = [key for key, (_, expires_at) in self._data.items() if now >= expires_at]
        for key in expired:
            del self._data[key]
        self._last_sweep = now

    def ttl_of(self, key: str) -> Optional[float]:
        """Remaining lifetime of a key in seconds (for testing)."""
        item = self._data.get(key)
        if item is None:
            return None
        return item[1] - self._clock()

    def keys(self) -> list[str]:
        """All keys currently held, expired or not (for testing)."""
        return list(self._data.keys())


class RedisCounterStore:
    """Counter store backed by Redis, shared by every gateway worker."""

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
        socket_timeout: float = 2.0,
    ) -> None:
        """
        Initialize the Redis store.

        Args:
            url: Redis connection URL (redis:// or rediss://)
            client: Pre-built client; takes precedence over url
            socket_timeout: Per-command timeout in seconds
        """
        if client is None and url is None:
            raise ValueError("Either url or client is required")

        self._client = client or aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except (RedisError, OSError) as e:
            raise StoreError("Counter store read failed", {"backend": "redis"}) from e

        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError) as e:
            raise StoreError("Counter store write failed", {"backend": "redis"}) from e

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
