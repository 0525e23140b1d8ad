"""
Lookup orchestrators for the Domain Shark gateway.

This module coordinates the components behind the two check endpoints:
- PremiumLookupOrchestrator: admission gates, domain validation, the paid
  status API, status classification and the post-success counter commits
- WHOISLookupOrchestrator: the rate limit gate, domain validation against the
  WHOIS allow-list and the raw WHOIS query

Admission and lookup are separate steps so the HTTP layer can run the gates
before it parses the request body.
"""

from typing import Optional

from .admission import AdmissionPipeline
from .audit_logger import AuditLogger
from .decision_engine import DecisionEngine
from .domain_validator import DomainValidator
from .enums import DomainValidationErrorCode, LogLevel
from .exceptions import ServiceUnavailableError, UnsupportedTLDError, ValidationError
from .models import AdmissionTicket, PremiumCheckResult, WHOISCheckResult
from .premium_client import PremiumClient
from .whois_client import WHOISClient


def _validated_domain(validator: DomainValidator, raw_domain: object) -> str:
    """Return the canonical domain or raise the matching request error."""
    result = validator.validate(raw_domain)
    if result.valid and result.canonical_domain:
        return result.canonical_domain

    error = result.error
    if error is not None and error.code == DomainValidationErrorCode.UNSUPPORTED_TLD:
        raise UnsupportedTLDError(error.details.get("tld", ""))
    raise ValidationError(error.message if error else "Invalid domain format")


class PremiumLookupOrchestrator:
    """
    Sequences one paid availability check.

    A request is charged (quota and monthly counter) only after the upstream
    call succeeded and its reply was classified.
    """

    def __init__(
        self,
        admission: AdmissionPipeline,
        premium_client: PremiumClient,
        decision_engine: Optional[DecisionEngine] = None,
        validator: Optional[DomainValidator] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._admission = admission
        self._premium_client = premium_client
        self._decision_engine = decision_engine or DecisionEngine()
        self._validator = validator or DomainValidator()
        self._logger = logger

    async def admit(self, client: str) -> AdmissionTicket:
        """Run the premium admission gates for a client."""
        return await self._admission.admit_premium(client)

    async def lookup(self, ticket: AdmissionTicket, raw_domain: object) -> PremiumCheckResult:
        """
        Perform the paid lookup for an admitted request.

        Args:
            ticket: Ticket returned by ``admit``
            raw_domain: The ``domain`` value from the request body

        Returns:
            PremiumCheckResult with the classified status

        Raises:
            ValidationError: If the domain is missing or malformed
            ServiceUnavailableError: If no API credential is configured
            QuotaExceededError: If the upstream API rate-limits us
            UpstreamError: If the upstream call fails
        """
        domain = _validated_domain(self._validator, raw_domain)

        if not self._premium_client.has_credentials:
            if self._logger:
                self._logger.log(
                    LogLevel.ERROR,
                    "PremiumLookupOrchestrator",
                    "Premium API credential is not configured",
                )
            raise ServiceUnavailableError("Premium API is not configured")

        data = await self._premium_client.fetch_status(domain)
        status = self._decision_engine.classify_response(data, domain)

        quota_committed, tripped = await self._admission.commit_premium(ticket)

        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                "PremiumLookupOrchestrator",
                "Premium check completed",
                {
                    "status": status.value,
                    "quota_committed": quota_committed,
                    "breaker_tripped": tripped,
                    "degraded": ticket.degraded,
                },
            )

        return PremiumCheckResult(
            status=status,
            remaining_checks=ticket.remaining_after_commit,
        )

    async def check(self, client: str, raw_domain: object) -> PremiumCheckResult:
        """Admit and look up in one call."""
        ticket = await self.admit(client)
        return await self.lookup(ticket, raw_domain)


class WHOISLookupOrchestrator:
    """Sequences one free WHOIS availability check."""

    def __init__(
        self,
        admission: AdmissionPipeline,
        whois_client: WHOISClient,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._admission = admission
        self._whois_client = whois_client
        self._validator = DomainValidator(whois_client.get_supported_tlds())
        self._logger = logger

    async def admit(self, client: str) -> bool:
        """Run the WHOIS admission gate; returns True when it ran degraded."""
        return await self._admission.admit_whois(client)

    async def lookup(self, raw_domain: object) -> WHOISCheckResult:
        """
        Query WHOIS for an admitted request.

        Raises:
            ValidationError: If the domain is missing or malformed
            UnsupportedTLDError: If the TLD is not on the WHOIS allow-list
        """
        domain = _validated_domain(self._validator, raw_domain)
        response = await self._whois_client.query(domain)

        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                "WHOISLookupOrchestrator",
                "WHOIS check completed",
                {"status": response.status.value, "state": response.state.value},
            )

        return WHOISCheckResult(status=response.status)

    async def check(self, client: str, raw_domain: object) -> WHOISCheckResult:
        """Admit and look up in one call."""
        await self.admit(client)
        return await self.lookup(raw_domain)
