"""
WHOIS Client module for domain availability checking.

Speaks the plaintext WHOIS protocol (TCP port 43) to the registry servers in
the WHOIS registry and classifies replies with each server's parser.

A query moves through CONNECTING -> QUERY_SENT -> READING and ends in
COMPLETE, TIMED_OUT or CONNECTION_FAILED. The whole exchange shares a single
deadline, and the reply is capped in size so a misbehaving server cannot
stream unbounded data at us.
"""

import asyncio
import contextlib
from dataclasses import dataclass, replace
from typing import Optional

from .audit_logger import AuditLogger
from .domain_validator import extract_tld
from .enums import AvailabilityStatus, LogLevel, WHOISQueryState
from .exceptions import UnsupportedTLDError
from .whois_registry import WHOIS_SERVERS, WHOISServerProfile


@dataclass
class WHOISResponse:
    """Response from a WHOIS query. Never log raw_response."""

    status: AvailabilityStatus
    raw_response: str
    state: WHOISQueryState
    truncated: bool = False


class WHOISClient:
    """
    WHOIS client with per-server query syntax and reply parsing.

    Unsupported TLDs are rejected before any connection is attempted.
    Transport failures never raise: they yield an empty reply, which
    classifies as UNKNOWN.
    """

    DEFAULT_PORT = 43
    DEFAULT_TIMEOUT = 5.0
    MAX_RESPONSE_BYTES = 10 * 1024
    READ_CHUNK_SIZE = 4096

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_response_bytes: int = MAX_RESPONSE_BYTES,
        port: int = DEFAULT_PORT,
        custom_servers: Optional[dict[str, str]] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the WHOIS client.

        Args:
            timeout: Deadline in seconds for the whole exchange
            max_response_bytes: Stop reading once more than this was received
            port: TCP port to connect to
            custom_servers: Optional hostname overrides per supported TLD
            logger: Optional audit logger
        """
        self._timeout = timeout
        self._max_response_bytes = max_response_bytes
        self._port = port
        self._logger = logger

        # Overrides only re-point known TLDs; they never extend the allow-list
        self._profiles: dict[str, WHOISServerProfile] = dict(WHOIS_SERVERS)
        for tld, hostname in (custom_servers or {}).items():
            profile = self._profiles.get(tld.lower())
            if profile is not None:
                self._profiles[profile.tld] = replace(profile, hostname=hostname)

    async def query(self, domain: str) -> WHOISResponse:
        """
        Query WHOIS for a domain and classify the reply.

        Args:
            domain: Syntactically valid, lowercased domain

        Returns:
            WHOISResponse with the classified status and terminal state

        Raises:
            UnsupportedTLDError: If the domain's TLD has no WHOIS profile
        """
        tld = extract_tld(domain) or ""
        profile = self._profiles.get(tld)
        if profile is None:
            raise UnsupportedTLDError(tld)

        raw_response, state, truncated = await self._execute_whois_query(profile, domain)
        status = self.classify(raw_response, tld)

        if self._logger:
            self._logger.log(
                LogLevel.DEBUG,
                "WHOISClient",
                "WHOIS query finished",
                {
                    "tld": tld,
                    "state": state.value,
                    "status": status.value,
                    "bytes": len(raw_response),
                    "truncated": truncated,
                },
            )

        return WHOISResponse(
            status=status,
            raw_response=raw_response,
            state=state,
            truncated=truncated,
        )

    async def _execute_whois_query(
        self, profile: WHOISServerProfile, domain: str
    ) -> tuple[str, WHOISQueryState, bool]:
        """
        Run one WHOIS exchange.

        Returns:
            Tuple of (decoded reply, terminal state, size guard tripped)
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(profile.hostname, self._port),
                timeout=self._timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            self._log_transport_failure(profile.tld, WHOISQueryState.CONNECTION_FAILED, e)
            return "", WHOISQueryState.CONNECTION_FAILED, False

        chunks: list[bytes] = []
        received = 0
        truncated = False
        state = WHOISQueryState.CONNECTING

        try:
            writer.write(profile.query_formatter(domain).encode("utf-8"))
            state = WHOISQueryState.QUERY_SENT
            await asyncio.wait_for(writer.drain(), timeout=max(0.0, deadline - loop.time()))
            # Half-close: most servers only hang up after writing the reply
            if writer.can_write_eof():
                writer.write_eof()

            state = WHOISQueryState.READING
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    state = WHOISQueryState.TIMED_OUT
                    break

                try:
                    chunk = await asyncio.wait_for(
                        reader.read(self.READ_CHUNK_SIZE), timeout=remaining
                    )
                except asyncio.TimeoutError:
                    state = WHOISQueryState.TIMED_OUT
                    break

                if not chunk:
                    state = WHOISQueryState.COMPLETE
                    break

                chunks.append(chunk)
                received += len(chunk)
                if received > self._max_response_bytes:
                    truncated = True
                    state = WHOISQueryState.COMPLETE
                    break
        except asyncio.TimeoutError:
            # Server stopped reading our query
            state = WHOISQueryState.TIMED_OUT
        except OSError as e:
            # Reset mid-exchange: keep whatever arrived
            self._log_transport_failure(profile.tld, state, e)
            state = WHOISQueryState.CONNECTION_FAILED
        finally:
            if state == WHOISQueryState.TIMED_OUT:
                # Drop unsent bytes instead of waiting for them to flush
                writer.transport.abort()
            else:
                writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        data = b"".join(chunks)
        if truncated:
            data = data[: self._max_response_bytes]

        # Some registries answer in Latin-1; never fail on decoding
        return data.decode("utf-8", errors="replace"), state, truncated

    def classify(self, raw_response: str, tld: str) -> AvailabilityStatus:
        """
        Classify a reply with the TLD's parser.

        Blank replies and TLDs without a parser are UNKNOWN.
        """
        if not raw_response or not raw_response.strip():
            return AvailabilityStatus.UNKNOWN

        profile = self._profiles.get(tld.lower())
        if profile is None:
            return AvailabilityStatus.UNKNOWN

        return profile.response_parser(raw_response)

    def is_supported(self, tld: str) -> bool:
        """Check if a TLD is on the WHOIS allow-list."""
        return tld.lower() in self._profiles

    def get_supported_tlds(self) -> list[str]:
        """Return list of TLDs with configured WHOIS servers."""
        return sorted(self._profiles.keys())

    def get_server_for_tld(self, tld: str) -> Optional[str]:
        """Get the WHOIS hostname for a TLD."""
        profile = self._profiles.get(tld.lower())
        return profile.hostname if profile else None

    def _log_transport_failure(
        self, tld: str, state: WHOISQueryState, error: BaseException
    ) -> None:
        if self._logger:
            self._logger.log(
                LogLevel.WARN,
                "WHOISClient",
                "WHOIS transport failure",
                {"tld": tld, "state": state.value, "error_type": type(error).__name__},
            )
