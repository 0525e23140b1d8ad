"""
Domain validation module.

Provides the pure syntactic domain check used by both endpoints and a
validator wrapper that reports structured errors and enforces a TLD
allow-list.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from domain_shark.enums import DomainValidationErrorCode


MAX_DOMAIN_LENGTH = 253
MAX_LABEL_LENGTH = 63

# Letters, digits and hyphen only; case is folded before matching
LABEL_PATTERN = re.compile(r"[a-z0-9-]+")


def is_valid_domain(domain: object) -> bool:
    """
    Check whether a value is a syntactically valid domain name.

    Never raises: any malformed input, including non-strings, yields False.
    """
    if not domain or not isinstance(domain, str):
        return False
    if len(domain) > MAX_DOMAIN_LENGTH:
        return False

    labels = domain.lower().split(".")
    if len(labels) < 2:
        return False

    for label in labels:
        if not label or len(label) > MAX_LABEL_LENGTH:
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
        if not LABEL_PATTERN.fullmatch(label):
            return False

    return True


def extract_tld(domain: str) -> Optional[str]:
    """Return the lowercased last label of a domain, or None."""
    if not domain or "." not in domain:
        return None
    tld = domain.rsplit(".", 1)[1].lower()
    return tld or None


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: DomainValidationErrorCode
    message: str
    details: dict


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[DomainValidationError]


class DomainValidator:
    """
    Validates domain names and optionally restricts them to a TLD allow-list.

    Error messages never echo the submitted domain.
    """

    def __init__(self, allowed_tlds: Optional[Iterable[str]] = None) -> None:
        """
        Initialize validator.

        Args:
            allowed_tlds: Allowed top-level domains (e.g. ['de', 'jp']);
                None accepts any TLD
        """
        self._allowed_tlds = (
            frozenset(tld.lower() for tld in allowed_tlds)
            if allowed_tlds is not None
            else None
        )

    def validate(self, raw_domain: object) -> DomainValidationResult:
        """
        Validate a domain value.

        Args:
            raw_domain: The raw value taken from the request body

        Returns:
            DomainValidationResult with the lowercased domain or an error
        """
        if not raw_domain:
            return self._failure(
                DomainValidationErrorCode.EMPTY_INPUT,
                "Missing required field: domain",
            )

        if not isinstance(raw_domain, str):
            return self._failure(
                DomainValidationErrorCode.INVALID_FORMAT,
                'Field "domain" must be a string',
            )

        if not is_valid_domain(raw_domain):
            return self._failure(
                DomainValidationErrorCode.INVALID_FORMAT,
                "Invalid domain format",
            )

        canonical = raw_domain.lower()
        tld = extract_tld(canonical)

        if self._allowed_tlds is not None and tld not in self._allowed_tlds:
            return self._failure(
                DomainValidationErrorCode.UNSUPPORTED_TLD,
                f"TLD '.{tld}' is not supported",
                {"tld": tld},
            )

        return DomainValidationResult(valid=True, canonical_domain=canonical, error=None)

    def is_valid_tld(self, tld: str) -> bool:
        """Check if a TLD passes the allow-list (always True without one)."""
        if self._allowed_tlds is None:
            return True
        return tld.lower() in self._allowed_tlds

    @staticmethod
    def _failure(
        code: DomainValidationErrorCode,
        message: str,
        details: Optional[dict] = None,
    ) -> DomainValidationResult:
        return DomainValidationResult(
            valid=False,
            canonical_domain=None,
            error=DomainValidationError(code=code, message=message, details=details or {}),
        )
