"""
Alert notification module for the Domain Shark gateway.

Delivers the one-shot "circuit breaker tripped" alert to an operator webhook.
The payload carries both ``text`` (Slack) and ``content`` (Discord) keys so
either kind of incoming webhook accepts it. Delivery is single-attempt and
best-effort: failures are logged and swallowed.
"""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

import httpx

from .audit_logger import AuditLogger
from .config import WebhookConfig
from .enums import LogLevel
from .exceptions import NotificationError


@dataclass
class AlertPayload:
    """Payload for a breaker-trip alert."""

    month: str
    count: int
    ceiling: int

    def format_message(self) -> str:
        return (
            f"Domain Shark circuit breaker tripped for {self.month}. "
            f"{self.count}/{self.ceiling} requests used. "
            "Premium search is now disabled until next month."
        )


@dataclass
class NotificationResult:
    """Result of a notification delivery attempt."""

    channel: str
    success: bool
    error: Optional[str] = None


@runtime_checkable
class AlertChannel(Protocol):
    """Protocol for anything the circuit breaker can alert through."""

    @abstractmethod
    async def notify(self, month: str, count: int, ceiling: int) -> Optional[NotificationResult]:
        """
        Announce that the monthly ceiling has been reached.

        Must never raise.
        """
        ...


class AlertNotifier:
    """Webhook alert channel using a single HTTP POST."""

    def __init__(
        self,
        config: WebhookConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            config: Webhook configuration; a missing URL makes notify a no-op
            client: Optional shared HTTP client (a fresh one is used per call
                otherwise)
            logger: Optional audit logger
        """
        self._url = config.url
        self._headers = config.headers.copy()
        self._timeout = config.timeout_seconds
        self._client = client
        self._logger = logger

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def get_name(self) -> str:
        """Return channel name."""
        return "webhook"

    async def notify(self, month: str, count: int, ceiling: int) -> Optional[NotificationResult]:
        """
        Send the breaker-trip alert.

        Returns:
            NotificationResult, or None when no webhook is configured
        """
        if not self._url:
            return None

        payload = AlertPayload(month=month, count=count, ceiling=ceiling)

        try:
            await self._post(payload)
        except (httpx.HTTPError, httpx.InvalidURL, NotificationError) as e:
            if self._logger:
                self._logger.log_error(
                    "AlertNotifier",
                    "Breaker alert delivery failed",
                    error=e,
                    additional_data={"month": month},
                )
            return NotificationResult(
                channel=self.get_name(),
                success=False,
                error=type(e).__name__,
            )

        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                "AlertNotifier",
                "Breaker alert delivered",
                {"month": month, "count": count, "ceiling": ceiling},
            )
        return NotificationResult(channel=self.get_name(), success=True)

    async def _post(self, payload: AlertPayload) -> None:
        message = payload.format_message()
        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)

        if self._client is not None:
            response = await self._client.post(
                self._url,
                json={"text": message, "content": message},
                headers=headers,
                timeout=self._timeout,
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._url,
                    json={"text": message, "content": message},
                    headers=headers,
                    timeout=self._timeout,
                )

        if not 200 <= response.status_code < 300:
            raise NotificationError(
                "Webhook rejected alert",
                {"response_status_code": response.status_code},
            )
