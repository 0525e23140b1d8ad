"""
Data models for the Domain Shark gateway.

This module defines the per-request values passed between the admission
pipeline, the lookup orchestrators and the HTTP layer. None of them are
persisted.
"""

from dataclasses import dataclass

from .enums import AvailabilityStatus, PremiumStatus


@dataclass
class AdmissionTicket:
    """
    Proof that a premium request passed every admission gate.

    Carries the quota reading the later commit is based on.
    """

    client: str
    quota_used: int
    free_limit: int
    monthly_ceiling: int
    degraded: bool = False

    @property
    def remaining_after_commit(self) -> int:
        return max(0, self.free_limit - (self.quota_used + 1))


@dataclass
class PremiumCheckResult:
    """Outcome of a successful premium lookup."""

    status: PremiumStatus
    remaining_checks: int

    def to_dict(self) -> dict:
        return {"status": self.status.value, "remainingChecks": self.remaining_checks}


@dataclass
class WHOISCheckResult:
    """Outcome of a WHOIS lookup. The raw reply is deliberately not kept."""

    status: AvailabilityStatus

    def to_dict(self) -> dict:
        return {"status": self.status.value}
