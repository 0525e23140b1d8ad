"""
Configuration dataclasses for the Domain Shark gateway.

This module defines all configuration structures used throughout the system,
including admission limits, the upstream premium API, WHOIS transport bounds,
the breaker alert webhook, the counter store, and logging. Values are read
from the process environment (optionally seeded from a ``.env`` file).
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_FREE_CHECKS_PER_CLIENT = 5
DEFAULT_MONTHLY_CEILING = 8000
DEFAULT_PREMIUM_API_BASE_URL = "https://api.domainr.com"
DEFAULT_CLIENT_IP_HEADER = "CF-Connecting-IP"


@dataclass
class AdmissionConfig:
    """Per-client and global limits applied before a paid lookup."""

    free_checks_per_client: int = DEFAULT_FREE_CHECKS_PER_CLIENT
    monthly_ceiling: int = DEFAULT_MONTHLY_CEILING


@dataclass
class UpstreamConfig:
    """Premium lookup API configuration."""

    api_token: Optional[str] = None
    base_url: str = DEFAULT_PREMIUM_API_BASE_URL
    timeout_seconds: float = 10.0


@dataclass
class WHOISConfig:
    """WHOIS transport bounds."""

    timeout_seconds: float = 5.0
    max_response_bytes: int = 10 * 1024
    port: int = 43


@dataclass
class WebhookConfig:
    """Breaker-trip alert webhook configuration."""

    url: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 5.0


@dataclass
class StoreConfig:
    """Counter store configuration; no URL selects the in-memory store."""

    redis_url: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "json"  # 'json', 'text', 'both'


@dataclass
class ServiceConfig:
    """Main service configuration combining all sub-configurations."""

    admission: AdmissionConfig = field(default_factory=AdmissionConfig)
    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    whois: WHOISConfig = field(default_factory=WHOISConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    client_ip_header: str = DEFAULT_CLIENT_IP_HEADER


def _positive_int(raw: Optional[str], default: int) -> int:
    """Parse a positive integer, falling back to the default."""
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _positive_float(raw: Optional[str], default: float) -> float:
    """Parse a positive float, falling back to the default."""
    try:
        value = float((raw or "").strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _optional_str(raw: Optional[str]) -> Optional[str]:
    """Treat unset and blank values alike."""
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _client_ip_header(raw: Optional[str]) -> str:
    """Unset selects the default header; set but blank disables header lookup."""
    if raw is None:
        return DEFAULT_CLIENT_IP_HEADER
    return raw.strip()


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> ServiceConfig:
    """
    Build the service configuration from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ`` after
            loading a ``.env`` file from the working directory, if any.

    Returns:
        ServiceConfig with defaults applied for missing or invalid values
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    log_format = (environ.get("LOG_FORMAT") or "json").strip().lower()
    if log_format not in ("json", "text", "both"):
        log_format = "json"

    log_level = (environ.get("LOG_LEVEL") or "info").strip().lower()
    if log_level not in ("debug", "info", "warn", "error"):
        log_level = "info"

    return ServiceConfig(
        admission=AdmissionConfig(
            free_checks_per_client=_positive_int(
                environ.get("FREE_CHECKS_PER_IP"), DEFAULT_FREE_CHECKS_PER_CLIENT
            ),
            monthly_ceiling=_positive_int(
                environ.get("MONTHLY_QUOTA_LIMIT"), DEFAULT_MONTHLY_CEILING
            ),
        ),
        upstream=UpstreamConfig(
            api_token=_optional_str(environ.get("FASTLY_API_TOKEN")),
            base_url=_optional_str(environ.get("PREMIUM_API_BASE_URL"))
            or DEFAULT_PREMIUM_API_BASE_URL,
        ),
        whois=WHOISConfig(
            timeout_seconds=_positive_float(environ.get("WHOIS_TIMEOUT_SECONDS"), 5.0),
        ),
        webhook=WebhookConfig(url=_optional_str(environ.get("ALERT_WEBHOOK"))),
        store=StoreConfig(redis_url=_optional_str(environ.get("REDIS_URL"))),
        logging=LoggingConfig(level=log_level, output_format=log_format),
        client_ip_header=_client_ip_header(environ.get("CLIENT_IP_HEADER")),
    )
