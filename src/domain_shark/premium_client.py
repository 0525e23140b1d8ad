"""
Premium Client for the paid domain status API.

Issues a single ``GET {base}/v2/status?domain=...`` per lookup with the
``Fastly-Key`` credential. There are no retries: a paid call is charged by
the provider whether or not we use the answer.

Error mapping:
- HTTP 429 from the provider -> QuotaExceededError (remaining 0)
- network error, timeout, any other non-2xx, unparsable JSON -> UpstreamError

Upstream bodies are never forwarded to callers or written to logs.
"""

from typing import Any, Optional

import httpx

from .audit_logger import AuditLogger
from .config import UpstreamConfig
from .exceptions import QuotaExceededError, ServiceUnavailableError, UpstreamError


class PremiumClient:
    """Async client for the premium domain status endpoint."""

    STATUS_PATH = "/v2/status"

    def __init__(
        self,
        config: UpstreamConfig,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the premium client.

        Args:
            config: Upstream configuration (token, base URL, timeout)
            client: Optional preconfigured HTTP client; one is created lazily
                otherwise
            logger: Optional audit logger
        """
        self._api_token = config.api_token
        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.timeout_seconds
        self._client = client
        self._owns_client = client is None
        self._logger = logger

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_token)

    async def __aenter__(self) -> "PremiumClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._timeout),
            )
            self._owns_client = True
        return self._client

    async def fetch_status(self, domain: str) -> dict[str, Any]:
        """
        Fetch the provider's status document for a domain.

        Args:
            domain: Canonical (lowercased) domain

        Returns:
            The decoded JSON object

        Raises:
            ServiceUnavailableError: If no API token is configured
            QuotaExceededError: If the provider rate-limits us
            UpstreamError: On any other failure
        """
        if not self._api_token:
            raise ServiceUnavailableError()

        client = self._ensure_client()

        try:
            response = await client.get(
                f"{self._base_url}{self.STATUS_PATH}",
                params={"domain": domain},
                headers={"Fastly-Key": self._api_token, "Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            self._log_failure("Premium API request failed", error=e)
            raise UpstreamError(details={"error_type": type(e).__name__}) from e

        if response.status_code == 429:
            self._log_failure("Premium API quota exhausted", status_code=429)
            raise QuotaExceededError()

        if not 200 <= response.status_code < 300:
            self._log_failure("Premium API returned an error", status_code=response.status_code)
            raise UpstreamError(details={"response_status_code": response.status_code})

        try:
            data = response.json()
        except ValueError as e:
            self._log_failure("Premium API returned invalid JSON", error=e)
            raise UpstreamError(details={"error_type": type(e).__name__}) from e

        if not isinstance(data, dict):
            self._log_failure("Premium API returned an unexpected document")
            raise UpstreamError(details={"error_type": type(data).__name__})

        return data

    def _log_failure(
        self,
        message: str,
        error: Optional[Exception] = None,
        status_code: Optional[int] = None,
    ) -> None:
        if self._logger:
            self._logger.log_error(
                "PremiumClient",
                message,
                error=error,
                response_status_code=status_code,
            )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
