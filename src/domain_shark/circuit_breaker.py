"""
Circuit Breaker module for the Domain Shark gateway.

A global monthly switch that stops paid upstream calls once a request
ceiling is reached. The breaker state is derived from the current month's
counter, so it closes by itself when the month rolls over and a fresh key
starts at zero.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .counter_store import (
    CounterStore,
    circuit_key,
    decode_count,
    encode_count,
    month_bucket,
    utc_now,
)
from .enums import LogLevel
from .exceptions import StoreError
from .notifications import AlertChannel


@dataclass
class BreakerStatus:
    """Derived breaker state for the current month."""

    open: bool
    request_count: int
    degraded: bool = False


class CircuitBreaker:
    """
    Monthly request ceiling across all clients.

    ``commit`` fires the alert only on the call that moves the count from
    below the ceiling to at-or-above it. Two concurrent commits that both
    read the pre-trip count can both fire; that looseness is accepted.
    Alerts are sent from background tasks; ``wait_for_alerts`` drains them.
    """

    COUNTER_TTL_SECONDS = 60 * 24 * 60 * 60

    def __init__(
        self,
        store: CounterStore,
        notifier: Optional[AlertChannel] = None,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._logger = logger
        self._pending_alerts: set[asyncio.Task] = set()

    async def check(self, ceiling: int) -> BreakerStatus:
        """
        Report whether the breaker is open, without counting this request.

        Returns:
            BreakerStatus; closed and ``degraded=True`` on store failure
        """
        key = circuit_key(month_bucket(self._clock()))

        try:
            count = decode_count(await self._store.get(key))
        except StoreError as e:
            self._warn("Counter store unavailable, failing open", e)
            return BreakerStatus(open=False, request_count=0, degraded=True)

        return BreakerStatus(open=count >= ceiling, request_count=count)

    async def commit(self, ceiling: int) -> bool:
        """
        Count one successful paid lookup.

        Returns:
            True if this call tripped the breaker and triggered the alert
        """
        month = month_bucket(self._clock())
        key = circuit_key(month)

        try:
            count = decode_count(await self._store.get(key))
            new_count = count + 1
            await self._store.put(key, encode_count(new_count), self.COUNTER_TTL_SECONDS)
        except StoreError as e:
            self._warn("Breaker commit failed", e)
            return False

        tripped = new_count >= ceiling and count < ceiling
        if tripped:
            if self._logger:
                self._logger.log(
                    LogLevel.WARN,
                    "CircuitBreaker",
                    "Monthly ceiling reached, premium lookups disabled",
                    {"month": month, "count": new_count, "ceiling": ceiling},
                )
            if self._notifier is not None:
                task = asyncio.create_task(self._notifier.notify(month, new_count, ceiling))
                self._pending_alerts.add(task)
                task.add_done_callback(self._pending_alerts.discard)

        return tripped

    async def wait_for_alerts(self) -> None:
        """Wait until every scheduled alert has been delivered or has failed."""
        if self._pending_alerts:
            await asyncio.gather(*self._pending_alerts, return_exceptions=True)

    def _warn(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.log(
                LogLevel.WARN,
                "CircuitBreaker",
                message,
                {"error_type": type(error).__name__},
            )
