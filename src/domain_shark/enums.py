"""
Enumeration types for the Domain Shark gateway.

These enums provide type-safe constants for status codes, error codes,
and configuration options throughout the system.
"""

from enum import Enum


class AvailabilityStatus(Enum):
    """Domain availability status reported by a WHOIS check."""

    AVAILABLE = "available"
    TAKEN = "taken"
    UNKNOWN = "unknown"


class PremiumStatus(Enum):
    """Domain status reported by a premium (paid API) check."""

    AVAILABLE = "available"
    TAKEN = "taken"
    PARKED = "parked"
    PREMIUM = "premium"
    FOR_SALE = "for_sale"
    UNKNOWN = "unknown"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    EMPTY_INPUT = "empty_input"
    INVALID_FORMAT = "invalid_format"
    UNSUPPORTED_TLD = "unsupported_tld"


class WHOISQueryState(Enum):
    """States a single WHOIS query passes through."""

    CONNECTING = "connecting"
    QUERY_SENT = "query_sent"
    READING = "reading"
    COMPLETE = "complete"
    TIMED_OUT = "timed_out"
    CONNECTION_FAILED = "connection_failed"
