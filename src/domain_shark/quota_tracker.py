"""
Quota Tracker module for the Domain Shark gateway.

Tracks how many paid checks each client has consumed in the current UTC
calendar month. Checking and committing are separate steps so that a check
is only charged after the upstream lookup it gates has succeeded.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .counter_store import (
    CounterStore,
    decode_count,
    encode_count,
    month_bucket,
    quota_key,
    utc_now,
)
from .enums import LogLevel
from .exceptions import StoreError


@dataclass
class QuotaStatus:
    """Result of a quota check."""

    allowed: bool
    used: int
    remaining: int
    degraded: bool = False


class QuotaTracker:
    """Per-client monthly allowance of free paid checks."""

    # Outlives the longest month plus a buffer
    COUNTER_TTL_SECONDS = 60 * 24 * 60 * 60

    def __init__(
        self,
        store: CounterStore,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._logger = logger

    async def check(self, client: str, free_limit: int) -> QuotaStatus:
        """
        Read the client's usage for this month without changing it.

        Args:
            client: Opaque client identity
            free_limit: Checks allowed per month

        Returns:
            QuotaStatus; permissive and ``degraded=True`` on store failure
        """
        key = quota_key(client, month_bucket(self._clock()))

        try:
            used = decode_count(await self._store.get(key))
        except StoreError as e:
            self._warn("Counter store unavailable, failing open", e)
            return QuotaStatus(allowed=True, used=0, remaining=free_limit, degraded=True)

        return QuotaStatus(
            allowed=used < free_limit,
            used=used,
            remaining=max(0, free_limit - used),
        )

    async def commit(self, client: str, used_before: int) -> bool:
        """
        Charge one check to the client.

        Must only be called after the gated lookup succeeded. Writes
        ``used_before + 1`` rather than re-reading, matching the value the
        caller's check observed.

        Args:
            client: Opaque client identity
            used_before: ``used`` from the preceding check

        Returns:
            True if the new count was stored
        """
        key = quota_key(client, month_bucket(self._clock()))

        try:
            await self._store.put(key, encode_count(used_before + 1), self.COUNTER_TTL_SECONDS)
        except StoreError as e:
            self._warn("Quota commit failed", e)
            return False
        return True

    def _warn(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.log(
                LogLevel.WARN,
                "QuotaTracker",
                message,
                {"error_type": type(error).__name__},
            )
