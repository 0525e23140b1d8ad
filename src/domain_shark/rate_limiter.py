"""
Rate Limiter module for the Domain Shark gateway.

This module provides per-client burst protection with:
- A fixed one-minute window keyed by the current UTC minute
- Counting of attempts (the counter is bumped before the gated work runs)
- Fail-open behaviour when the counter store is unavailable
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .counter_store import (
    CounterStore,
    decode_count,
    encode_count,
    minute_bucket,
    rate_key,
    utc_now,
)
from .enums import LogLevel
from .exceptions import StoreError


@dataclass
class RateLimitStatus:
    """Result of a rate limit check."""

    limited: bool
    count: int = 0
    degraded: bool = False


class RateLimiter:
    """
    Fixed-window rate limiter backed by the counter store.

    No locking is done: concurrent requests may race on the read-modify-write
    and under-count by one, which is tolerable for a coarse abuse guard.
    """

    # Requests allowed per client per minute
    MAX_REQUESTS_PER_WINDOW = 10
    # Bucket lifetime; twice the window to tolerate skew at the boundary
    BUCKET_TTL_SECONDS = 120

    def __init__(
        self,
        store: CounterStore,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            store: Counter store holding the per-minute buckets
            clock: Source of the current UTC time
            logger: Optional audit logger
        """
        self._store = store
        self._clock = clock
        self._logger = logger

    async def check_and_consume(self, client: str) -> RateLimitStatus:
        """
        Check the client's current bucket and record this attempt.

        A client already at the limit is rejected without incrementing, so a
        flood of rejected requests does not extend the block.

        Args:
            client: Opaque client identity

        Returns:
            RateLimitStatus; ``limited=False, degraded=True`` on store failure
        """
        key = rate_key(client, minute_bucket(self._clock()))

        try:
            count = decode_count(await self._store.get(key))

            if count >= self.MAX_REQUESTS_PER_WINDOW:
                return RateLimitStatus(limited=True, count=count)

            await self._store.put(key, encode_count(count + 1), self.BUCKET_TTL_SECONDS)
            return RateLimitStatus(limited=False, count=count + 1)
        except StoreError as e:
            if self._logger:
                self._logger.log(
                    LogLevel.WARN,
                    "RateLimiter",
                    "Counter store unavailable, failing open",
                    {"error_type": type(e).__name__},
                )
            return RateLimitStatus(limited=False, degraded=True)
