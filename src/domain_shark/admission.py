"""
Admission Pipeline for the Domain Shark gateway.

Every inbound check passes through an ordered set of gates before any
outbound work happens:

    premium:  rate limiter -> circuit breaker (read) -> quota (read)
    whois:    rate limiter

The first rejecting gate short-circuits the rest. Counters the premium gates
read are only advanced by ``commit_premium`` once the paid lookup succeeded.
"""

import asyncio
from typing import Optional

from .audit_logger import AuditLogger
from .circuit_breaker import CircuitBreaker
from .config import AdmissionConfig
from .enums import LogLevel
from .exceptions import QuotaExceededError, RateLimitError, ServiceUnavailableError
from .models import AdmissionTicket
from .quota_tracker import QuotaTracker
from .rate_limiter import RateLimiter


class AdmissionPipeline:
    """Ordered admission gates shared by both check endpoints."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        circuit_breaker: CircuitBreaker,
        quota_tracker: QuotaTracker,
        config: Optional[AdmissionConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._circuit_breaker = circuit_breaker
        self._quota_tracker = quota_tracker
        self._config = config or AdmissionConfig()
        self._logger = logger

    @property
    def config(self) -> AdmissionConfig:
        return self._config

    async def admit_whois(self, client: str) -> bool:
        """
        Admit a WHOIS check; only the per-minute limit applies.

        Returns:
            True if a gate ran degraded (store unavailable)

        Raises:
            RateLimitError: If the client is over the per-minute limit
        """
        status = await self._rate_limiter.check_and_consume(client)
        if status.limited:
            self._reject("rate_limited")
            raise RateLimitError()
        return status.degraded

    async def admit_premium(self, client: str) -> AdmissionTicket:
        """
        Admit a premium check.

        Raises:
            RateLimitError: If the client is over the per-minute limit
            ServiceUnavailableError: If the monthly breaker is open
            QuotaExceededError: If the client's free checks are used up
        """
        rate = await self._rate_limiter.check_and_consume(client)
        if rate.limited:
            self._reject("rate_limited")
            raise RateLimitError()

        ceiling = self._config.monthly_ceiling
        breaker = await self._circuit_breaker.check(ceiling)
        if breaker.open:
            self._reject("circuit_open")
            raise ServiceUnavailableError("Premium search is disabled for this month")

        free_limit = self._config.free_checks_per_client
        quota = await self._quota_tracker.check(client, free_limit)
        if not quota.allowed:
            self._reject("quota_exceeded")
            raise QuotaExceededError({"used": quota.used, "limit": free_limit})

        return AdmissionTicket(
            client=client,
            quota_used=quota.used,
            free_limit=free_limit,
            monthly_ceiling=ceiling,
            degraded=rate.degraded or breaker.degraded or quota.degraded,
        )

    async def commit_premium(self, ticket: AdmissionTicket) -> tuple[bool, bool]:
        """
        Record a successful paid lookup against both monthly counters.

        The commits run concurrently and independently; neither outcome
        affects the other or the caller's response.

        Returns:
            Tuple of (quota committed, breaker tripped by this commit)
        """
        quota_result, breaker_result = await asyncio.gather(
            self._quota_tracker.commit(ticket.client, ticket.quota_used),
            self._circuit_breaker.commit(ticket.monthly_ceiling),
            return_exceptions=True,
        )

        for result in (quota_result, breaker_result):
            if isinstance(result, Exception):
                if self._logger:
                    self._logger.log_error(
                        "AdmissionPipeline",
                        "Counter commit raised unexpectedly",
                        error=result,
                    )

        return quota_result is True, breaker_result is True

    def _reject(self, reason: str) -> None:
        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                "AdmissionPipeline",
                "Request rejected at admission",
                {"reason": reason},
            )
