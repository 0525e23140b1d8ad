"""
Domain Shark - Domain availability gateway.

This package provides an HTTP gateway that answers domain availability
questions through a paid status API (guarded by per-client rate limits,
per-client monthly quotas and a global monthly circuit breaker) and through
raw WHOIS queries for ccTLDs without a structured lookup service.
"""

__version__ = "0.1.0"
__author__ = "Domain Shark Team"

from domain_shark.exceptions import (
    DomainSharkError,
    ValidationError,
    UnsupportedTLDError,
    RateLimitError,
    QuotaExceededError,
    ServiceUnavailableError,
    UpstreamError,
    EndpointNotFoundError,
    InternalServiceError,
    StoreError,
    NotificationError,
)
from domain_shark.enums import (
    AvailabilityStatus,
    PremiumStatus,
    LogLevel,
    DomainValidationErrorCode,
    WHOISQueryState,
)
from domain_shark.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
    is_valid_domain,
    extract_tld,
)
from domain_shark.config import (
    AdmissionConfig,
    UpstreamConfig,
    WHOISConfig,
    WebhookConfig,
    StoreConfig,
    LoggingConfig,
    ServiceConfig,
    load_config_from_env,
)
from domain_shark.models import (
    AdmissionTicket,
    PremiumCheckResult,
    WHOISCheckResult,
)
from domain_shark.counter_store import (
    CounterStore,
    MemoryCounterStore,
    RedisCounterStore,
)
from domain_shark.rate_limiter import (
    RateLimiter,
    RateLimitStatus,
)
from domain_shark.quota_tracker import (
    QuotaTracker,
    QuotaStatus,
)
from domain_shark.circuit_breaker import (
    CircuitBreaker,
    BreakerStatus,
)
from domain_shark.notifications import (
    AlertPayload,
    AlertChannel,
    AlertNotifier,
    NotificationResult,
)
from domain_shark.whois_registry import (
    WHOISServerProfile,
    WHOIS_SERVERS,
    SUPPORTED_TLDS,
)
from domain_shark.whois_client import (
    WHOISClient,
    WHOISResponse,
)
from domain_shark.premium_client import (
    PremiumClient,
)
from domain_shark.decision_engine import (
    DecisionEngine,
)
from domain_shark.admission import (
    AdmissionPipeline,
)
from domain_shark.orchestrator import (
    PremiumLookupOrchestrator,
    WHOISLookupOrchestrator,
)
from domain_shark.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_shark.app import (
    create_app,
)
from domain_shark.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "DomainSharkError",
    "ValidationError",
    "UnsupportedTLDError",
    "RateLimitError",
    "QuotaExceededError",
    "ServiceUnavailableError",
    "UpstreamError",
    "EndpointNotFoundError",
    "InternalServiceError",
    "StoreError",
    "NotificationError",
    # Enums
    "AvailabilityStatus",
    "PremiumStatus",
    "LogLevel",
    "DomainValidationErrorCode",
    "WHOISQueryState",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    "is_valid_domain",
    "extract_tld",
    # Configuration
    "AdmissionConfig",
    "UpstreamConfig",
    "WHOISConfig",
    "WebhookConfig",
    "StoreConfig",
    "LoggingConfig",
    "ServiceConfig",
    "load_config_from_env",
    # Models
    "AdmissionTicket",
    "PremiumCheckResult",
    "WHOISCheckResult",
    # Counter Store
    "CounterStore",
    "MemoryCounterStore",
    "RedisCounterStore",
    # Admission gates
    "RateLimiter",
    "RateLimitStatus",
    "QuotaTracker",
    "QuotaStatus",
    "CircuitBreaker",
    "BreakerStatus",
    "AdmissionPipeline",
    # Notifications
    "AlertPayload",
    "AlertChannel",
    "AlertNotifier",
    "NotificationResult",
    # WHOIS
    "WHOISServerProfile",
    "WHOIS_SERVERS",
    "SUPPORTED_TLDS",
    "WHOISClient",
    "WHOISResponse",
    # Premium lookups
    "PremiumClient",
    "DecisionEngine",
    "PremiumLookupOrchestrator",
    "WHOISLookupOrchestrator",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # HTTP / CLI
    "create_app",
    "cli_main",
    "create_parser",
]
