"""
Tests for the WHOIS Client module.

Exercises the real TCP transport against a local asyncio server standing in
for a registry: complete replies, half-close, the deadline, the size guard,
refused connections and decoding. Classification helpers are covered with
Hypothesis.
"""

import asyncio
import time
from dataclasses import replace
from io import StringIO

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_shark.audit_logger import AuditLogger
from domain_shark.enums import AvailabilityStatus, LogLevel, WHOISQueryState
from domain_shark.exceptions import UnsupportedTLDError
from domain_shark.whois_client import WHOISClient
from domain_shark.whois_registry import SUPPORTED_TLDS


LOCALHOST = "127.0.0.1"


class FakeRegistry:
    """
    Local TCP server playing a WHOIS registry.

    ``behaviour`` is awaited per connection with (reader, writer, registry).
    Handlers that need to stall wait on ``release``.
    """

    def __init__(self, behaviour) -> None:
        self._behaviour = behaviour
        self.queries: list[bytes] = []
        self.connections = 0
        self.release = None
        self._server = None
        self.port = 0

    async def __aenter__(self) -> "FakeRegistry":
        self.release = asyncio.Event()
        self._server = await asyncio.start_server(self._handle, LOCALHOST, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release.set()
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader, writer) -> None:
        self.connections += 1
        try:
            await self._behaviour(reader, writer, self)
        except ConnectionError:
            pass
        finally:
            writer.close()

    def client(self, **kwargs) -> WHOISClient:
        servers = {tld: LOCALHOST for tld in SUPPORTED_TLDS}
        return WHOISClient(port=self.port, custom_servers=servers, **kwargs)


def reply_with(payload: bytes):
    async def behaviour(reader, writer, registry):
        registry.queries.append(await reader.readline())
        writer.write(payload)
        await writer.drain()
    return behaviour


class TestTransportProperty:
    """
    Tests for complete exchanges.

    **Property 1: A reply followed by the server closing ends in COMPLETE
    and is classified with the TLD's parser**
    """

    def test_complete_available(self) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"Domain: example.de\nStatus: free\n")) as registry:
                response = await registry.client().query("example.de")
                return response, registry.queries

        response, queries = asyncio.run(run_test())

        assert queries == [b"-T dn,ace example.de\r\n"]
        assert response.state == WHOISQueryState.COMPLETE
        assert response.status == AvailabilityStatus.AVAILABLE
        assert not response.truncated
        assert "Status: free" in response.raw_response

    def test_complete_taken(self) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"No match!!\n")) as registry:
                free = await registry.client().query("free.jp")
            async with FakeRegistry(reply_with(b"[Domain Name]  JPRS.JP\n")) as registry:
                taken = await registry.client().query("jprs.jp")
                return free, taken, registry.queries

        free, taken, queries = asyncio.run(run_test())

        assert free.status == AvailabilityStatus.AVAILABLE
        assert taken.status == AvailabilityStatus.TAKEN
        assert queries == [b"jprs.jp/e\r\n"]

    def test_server_waiting_for_eof(self) -> None:
        """The client half-closes after the query so read-to-EOF servers answer."""
        async def behaviour(reader, writer, registry):
            registry.queries.append(await reader.read())
            writer.write(b"No entries found for the selected source(s).\n")
            await writer.drain()

        async def run_test():
            async with FakeRegistry(behaviour) as registry:
                response = await registry.client(timeout=2.0).query("free.ru")
                return response, registry.queries

        response, queries = asyncio.run(run_test())

        assert queries == [b"free.ru\r\n"]
        assert response.state == WHOISQueryState.COMPLETE
        assert response.status == AvailabilityStatus.AVAILABLE

    def test_empty_reply_unknown(self) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"")) as registry:
                return await registry.client().query("example.cn")

        response = asyncio.run(run_test())

        assert response.state == WHOISQueryState.COMPLETE
        assert response.raw_response == ""
        assert response.status == AvailabilityStatus.UNKNOWN

    def test_invalid_utf8_replaced(self) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"Domain: m\xfcller.de\nStatus: connect\n")) as registry:
                return await registry.client().query("xn--mller-kva.de")

        response = asyncio.run(run_test())

        assert "�" in response.raw_response
        assert response.status == AvailabilityStatus.TAKEN


class TestBoundsProperty:
    """
    Tests for transport bounds.

    **Property 2: A stalled server ends in TIMED_OUT within the deadline and
    an oversized reply is cut at the size limit**
    """

    def test_stalled_server_times_out(self) -> None:
        async def behaviour(reader, writer, registry):
            await reader.readline()
            writer.write(b"% partial reply\n")
            await writer.drain()
            await registry.release.wait()

        async def run_test():
            async with FakeRegistry(behaviour) as registry:
                started = time.monotonic()
                response = await registry.client(timeout=0.3).query("example.se")
                return response, time.monotonic() - started

        response, elapsed = asyncio.run(run_test())

        assert response.state == WHOISQueryState.TIMED_OUT
        assert response.raw_response == "% partial reply\n"
        assert response.status == AvailabilityStatus.UNKNOWN
        assert elapsed < 2.0

    def test_unread_query_times_out(self) -> None:
        async def behaviour(reader, writer, registry):
            await registry.release.wait()

        async def run_test():
            async with FakeRegistry(behaviour) as registry:
                client = registry.client(timeout=0.5)
                # Larger than the loopback socket buffers, so drain has to wait
                client._profiles["se"] = replace(
                    client._profiles["se"], query_formatter=lambda domain: "x" * (32 * 1024 * 1024)
                )
                started = time.monotonic()
                response = await client.query("example.se")
                return response, time.monotonic() - started

        response, elapsed = asyncio.run(run_test())

        assert response.state == WHOISQueryState.TIMED_OUT
        assert response.raw_response == ""
        assert response.status == AvailabilityStatus.UNKNOWN
        assert elapsed < 3.0

    def test_oversized_reply_truncated(self) -> None:
        async def behaviour(reader, writer, registry):
            await reader.readline()
            writer.write(b"x" * (50 * 1024))
            await writer.drain()
            await registry.release.wait()

        async def run_test():
            async with FakeRegistry(behaviour) as registry:
                return await registry.client(timeout=5.0).query("example.at")

        response = asyncio.run(run_test())

        assert response.truncated
        assert response.state == WHOISQueryState.COMPLETE
        assert len(response.raw_response) == WHOISClient.MAX_RESPONSE_BYTES
        assert response.status == AvailabilityStatus.UNKNOWN

    @given(limit=st.integers(min_value=1, max_value=4096))
    @settings(max_examples=10, deadline=None)
    def test_custom_size_limit(self, limit: int) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"y" * 8192)) as registry:
                return await registry.client(max_response_bytes=limit).query("example.hk")

        response = asyncio.run(run_test())

        assert response.truncated
        assert len(response.raw_response) == limit

    def test_connection_refused(self) -> None:
        async def run_test():
            # Grab a free port, then stop listening on it
            async with FakeRegistry(reply_with(b"")) as registry:
                port = registry.port
            client = WHOISClient(
                port=port,
                custom_servers={tld: LOCALHOST for tld in SUPPORTED_TLDS},
                timeout=2.0,
            )
            return await client.query("example.it")

        response = asyncio.run(run_test())

        assert response.state == WHOISQueryState.CONNECTION_FAILED
        assert response.raw_response == ""
        assert response.status == AvailabilityStatus.UNKNOWN


class TestAllowListProperty:
    """
    Property-based tests for the TLD allow-list.

    **Property 3: Unsupported TLDs are rejected before any connection**
    """

    @given(tld=st.sampled_from(["com", "net", "org", "io", "xx", "uk", "fr"]))
    @settings(max_examples=20, deadline=None)
    def test_unsupported_tld_no_connection(self, tld: str) -> None:
        async def run_test():
            async with FakeRegistry(reply_with(b"No match!!\n")) as registry:
                try:
                    await registry.client().query(f"example.{tld}")
                except UnsupportedTLDError as e:
                    return e, registry.connections
                return None, registry.connections

        error, connections = asyncio.run(run_test())

        assert error is not None
        assert error.code == "unsupported_tld"
        assert error.details == {"tld": tld}
        assert connections == 0

    def test_supported_tlds(self) -> None:
        client = WHOISClient()
        assert client.get_supported_tlds() == sorted(SUPPORTED_TLDS)
        assert len(client.get_supported_tlds()) == 13
        assert client.is_supported("DE")
        assert not client.is_supported("com")

    def test_custom_servers_only_repoint(self) -> None:
        client = WHOISClient(custom_servers={"de": "whois.test", "com": "whois.test"})
        assert client.get_server_for_tld("de") == "whois.test"
        assert client.get_server_for_tld("eu") == "whois.eu"
        assert not client.is_supported("com")


class TestClassifyProperty:
    """
    Property-based tests for classification.

    **Property 4: Blank replies and unknown servers classify as UNKNOWN**
    """

    @given(tld=st.sampled_from(sorted(SUPPORTED_TLDS)), blank=st.sampled_from(["", " ", "\r\n", "\n\n\t"]))
    def test_blank_unknown(self, tld: str, blank: str) -> None:
        assert WHOISClient().classify(blank, tld) == AvailabilityStatus.UNKNOWN

    @given(text=st.text(max_size=200))
    def test_unknown_server(self, text: str) -> None:
        assert WHOISClient().classify(text, "com") == AvailabilityStatus.UNKNOWN

    def test_logs_never_contain_domain(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="both", output_stream=stream, min_level=LogLevel.DEBUG)

        async def run_test():
            async with FakeRegistry(reply_with(b"Domain: secretname.de\nStatus: connect\n")) as registry:
                return await registry.client(logger=logger).query("secretname.de")

        asyncio.run(run_test())

        assert logger.entries
        assert "secretname" not in stream.getvalue()
