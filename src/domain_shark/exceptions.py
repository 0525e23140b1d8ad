"""
Exception classes for the Domain Shark gateway.

All exceptions inherit from DomainSharkError and provide structured
error information with codes, messages, and optional details. Errors that
reach a caller carry the HTTP status they are rendered with.
"""

from typing import Optional


class DomainSharkError(Exception):
    """Base exception for all gateway errors."""

    http_status: int = 500
    # Whether the message is included in the HTTP error body
    expose_message: bool = True

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_response_body(self) -> dict:
        """Build the public JSON error body: code plus optional message."""
        body: dict = {"error": self.code}
        if self.expose_message and self.message:
            body["message"] = self.message
        return body


class ValidationError(DomainSharkError):
    """Raised when a request body or domain fails validation."""

    http_status = 400

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__("bad_request", message, details)


class UnsupportedTLDError(DomainSharkError):
    """Raised when a WHOIS check targets a TLD outside the allow-list."""

    http_status = 400

    def __init__(self, tld: str) -> None:
        super().__init__(
            "unsupported_tld",
            f"TLD '.{tld}' is not supported for WHOIS lookup",
            {"tld": tld},
        )


class RateLimitError(DomainSharkError):
    """Raised when a client exceeds the per-minute request limit."""

    http_status = 429

    def __init__(self) -> None:
        super().__init__(
            "rate_limited",
            "Rate limit exceeded. Please try again later.",
        )


class QuotaExceededError(DomainSharkError):
    """Raised when a client has used up its free monthly checks."""

    http_status = 429
    expose_message = False

    def __init__(self, details: Optional[dict] = None) -> None:
        super().__init__("quota_exceeded", "Monthly check quota exhausted", details)

    def to_response_body(self) -> dict:
        return {"error": self.code, "remainingChecks": 0}


class ServiceUnavailableError(DomainSharkError):
    """Raised when paid lookups are disabled, unconfigured or unreachable."""

    http_status = 503
    expose_message = False

    def __init__(self, message: str = "Service unavailable", details: Optional[dict] = None) -> None:
        super().__init__("service_unavailable", message, details)


class UpstreamError(ServiceUnavailableError):
    """Raised when the premium lookup API fails (network, non-2xx, bad body)."""

    pass


class EndpointNotFoundError(DomainSharkError):
    """Raised for unknown routes and unsupported methods."""

    http_status = 404

    def __init__(self) -> None:
        super().__init__("not_found", "Endpoint not found")


class InternalServiceError(DomainSharkError):
    """Rendered for unexpected failures; internals are never exposed."""

    expose_message = False

    def __init__(self) -> None:
        super().__init__("internal_error", "Internal server error")


class StoreError(DomainSharkError):
    """Raised by counter-store backends; always handled as fail-open."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__("store_error", message, details)


class NotificationError(DomainSharkError):
    """Raised when alert delivery fails; never surfaced to callers."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__("notification_error", message, details)
