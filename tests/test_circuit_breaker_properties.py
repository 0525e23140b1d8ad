"""
Property-based tests for the Circuit Breaker module.

Uses Hypothesis for property-based testing to verify the monthly ceiling,
single alert on trip, month rollover and fail-open behaviour.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from hypothesis import given, settings
from hypothesis import strategies as st

from domain_shark.circuit_breaker import CircuitBreaker
from domain_shark.counter_store import MemoryCounterStore, circuit_key, encode_count
from domain_shark.notifications import AlertChannel, NotificationResult


OCTOBER = datetime(2026, 10, 31, 23, 59, tzinfo=timezone.utc)
NOVEMBER = datetime(2026, 11, 1, 0, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime = OCTOBER) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class MockAlertChannel:
    """Records every alert instead of delivering it."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, int]] = []

    async def notify(self, month: str, count: int, ceiling: int) -> Optional[NotificationResult]:
        self.calls.append((month, count, ceiling))
        return NotificationResult(channel="mock", success=True)


class StalledAlertChannel:
    """Alert channel whose delivery blocks until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.delivered: list[tuple[str, int, int]] = []

    async def notify(self, month: str, count: int, ceiling: int) -> Optional[NotificationResult]:
        await self.release.wait()
        self.delivered.append((month, count, ceiling))
        return NotificationResult(channel="stalled", success=True)


class TestBreakerStateProperty:
    """
    Property-based tests for the derived breaker state.

    **Property 1: The breaker is open iff the month's count >= ceiling**
    """

    @given(
        ceiling=st.integers(min_value=1, max_value=10000),
        count=st.integers(min_value=0, max_value=20000),
    )
    @settings(max_examples=100)
    def test_open_iff_at_ceiling(self, ceiling: int, count: int) -> None:
        store = MemoryCounterStore()
        breaker = CircuitBreaker(store, clock=MutableClock())

        async def run_test():
            await store.put(circuit_key("2026-10"), encode_count(count), 60)
            return await breaker.check(ceiling)

        status = asyncio.run(run_test())

        assert status.open == (count >= ceiling)
        assert status.request_count == count
        assert not status.degraded

    def test_new_month_closes(self) -> None:
        store = MemoryCounterStore()
        clock = MutableClock()
        breaker = CircuitBreaker(store, clock=clock)

        async def run_test():
            await store.put(circuit_key("2026-10"), encode_count(8000), 60)
            before = await breaker.check(8000)
            clock.now = NOVEMBER
            after = await breaker.check(8000)
            return before, after

        before, after = asyncio.run(run_test())
        assert before.open
        assert not after.open
        assert after.request_count == 0

    def test_check_does_not_write(self) -> None:
        store = MemoryCounterStore()
        breaker = CircuitBreaker(store, clock=MutableClock())
        asyncio.run(breaker.check(10))
        assert store.keys() == []


class TestSingleAlertProperty:
    """
    Tests for the trip alert.

    **Property 2: Sequential commits fire exactly one alert, on the commit
    that reaches the ceiling**
    """

    def test_default_ceiling_fires_once(self) -> None:
        channel = MockAlertChannel()
        store = MemoryCounterStore()
        breaker = CircuitBreaker(store, notifier=channel, clock=MutableClock())

        async def run_test():
            trips = []
            for _ in range(8000):
                trips.append(await breaker.commit(8000))
            after = await breaker.check(8000)
            await breaker.wait_for_alerts()
            return trips, after

        trips, after = asyncio.run(run_test())

        assert channel.calls == [("2026-10", 8000, 8000)]
        assert trips.count(True) == 1
        assert trips[-1] is True
        assert after.open

    @given(
        ceiling=st.integers(min_value=1, max_value=30),
        commits=st.integers(min_value=0, max_value=60),
    )
    @settings(max_examples=100)
    def test_alert_count(self, ceiling: int, commits: int) -> None:
        channel = MockAlertChannel()
        breaker = CircuitBreaker(MemoryCounterStore(), notifier=channel, clock=MutableClock())

        async def run_test():
            for _ in range(commits):
                await breaker.commit(ceiling)
            await breaker.wait_for_alerts()

        asyncio.run(run_test())

        expected = 1 if commits >= ceiling else 0
        assert len(channel.calls) == expected
        if expected:
            assert channel.calls[0] == ("2026-10", ceiling, ceiling)

    def test_commit_past_ceiling_does_not_alert(self) -> None:
        channel = MockAlertChannel()
        store = MemoryCounterStore()
        breaker = CircuitBreaker(store, notifier=channel, clock=MutableClock())

        async def run_test():
            await store.put(circuit_key("2026-10"), encode_count(12), 60)
            return await breaker.commit(10)

        assert asyncio.run(run_test()) is False
        assert channel.calls == []

    def test_works_without_notifier(self) -> None:
        breaker = CircuitBreaker(MemoryCounterStore(), clock=MutableClock())

        async def run_test():
            return [await breaker.commit(2) for _ in range(3)]

        assert asyncio.run(run_test()) == [False, True, False]

    def test_slow_alert_does_not_delay_commit(self) -> None:
        channel = StalledAlertChannel()
        breaker = CircuitBreaker(MemoryCounterStore(), notifier=channel, clock=MutableClock())

        async def run_test():
            tripped = await asyncio.wait_for(breaker.commit(1), timeout=1.0)
            delivered_before_release = channel.delivered
            channel.release.set()
            await breaker.wait_for_alerts()
            return tripped, delivered_before_release

        tripped, delivered_before_release = asyncio.run(run_test())

        assert tripped is True
        assert delivered_before_release == []
        assert channel.delivered == [("2026-10", 1, 1)]

    def test_wait_for_alerts_without_alerts(self) -> None:
        breaker = CircuitBreaker(MemoryCounterStore(), notifier=MockAlertChannel(), clock=MutableClock())
        asyncio.run(breaker.wait_for_alerts())

    def test_mock_channel_satisfies_protocol(self) -> None:
        assert isinstance(MockAlertChannel(), AlertChannel)


class TestBreakerFailOpenProperty:
    """
    Tests for store outages.

    **Property 3: Store failures keep the breaker closed and never alert**
    """

    def test_read_failure_closed(self) -> None:
        store = MemoryCounterStore()
        store.fail_reads = True
        breaker = CircuitBreaker(store, clock=MutableClock())

        status = asyncio.run(breaker.check(1))

        assert not status.open
        assert status.degraded

    def test_write_failure_no_alert(self) -> None:
        channel = MockAlertChannel()
        store = MemoryCounterStore()
        store.fail_writes = True
        breaker = CircuitBreaker(store, notifier=channel, clock=MutableClock())

        assert asyncio.run(breaker.commit(1)) is False
        assert channel.calls == []
