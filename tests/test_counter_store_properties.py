"""
Property-based tests for the Counter Store module.

Uses Hypothesis for property-based testing to verify counter encoding, key
layout, expiry of the in-memory backend and error translation of the Redis
backend.
"""

import asyncio
from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st
from redis.exceptions import ConnectionError as RedisConnectionError

from domain_shark.counter_store import (
    CounterStore,
    MemoryCounterStore,
    RedisCounterStore,
    circuit_key,
    decode_count,
    encode_count,
    minute_bucket,
    month_bucket,
    quota_key,
    rate_key,
)
from domain_shark.exceptions import StoreError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FailingRedis:
    """Stand-in for redis.asyncio.Redis whose commands always fail."""

    def __init__(self, error: Exception) -> None:
        self._error = error
        self.closed = False

    async def get(self, key):
        raise self._error

    async def set(self, key, value, ex=None):
        raise self._error

    async def aclose(self):
        self.closed = True


class RecordingRedis:
    """Stand-in for redis.asyncio.Redis backed by a dict."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiry[key] = ex


class TestCountEncodingProperty:
    """
    Property-based tests for counter values.

    **Property 1: Counters are stored as {"count": N} and read back exactly**
    """

    @given(count=st.integers(min_value=0, max_value=10**9))
    @settings(max_examples=100)
    def test_encode_decode(self, count: int) -> None:
        assert decode_count(encode_count(count)) == count
        assert encode_count(count) == f'{{"count": {count}}}'

    def test_missing_value_is_zero(self) -> None:
        assert decode_count(None) == 0

    def test_missing_count_field_is_zero(self) -> None:
        assert decode_count("{}") == 0

    @given(raw=st.sampled_from([
        "not json", "[1, 2]", "42", '"text"', '{"count": -1}',
        '{"count": "3"}', '{"count": 1.5}', '{"count": true}', "",
    ]))
    def test_malformed_values_raise_store_error(self, raw: str) -> None:
        try:
            decode_count(raw)
        except StoreError:
            return
        raise AssertionError(f"Expected StoreError for {raw!r}")


class TestKeyLayoutProperty:
    """
    Tests for time buckets and key names.

    **Property 2: Keys embed their UTC minute or month bucket**
    """

    @given(seconds=st.integers(min_value=0, max_value=4 * 10**9))
    @settings(max_examples=100)
    def test_minute_bucket(self, seconds: int) -> None:
        now = datetime.fromtimestamp(seconds, tz=timezone.utc)
        assert minute_bucket(now) == seconds // 60

    def test_same_minute_shares_bucket(self) -> None:
        start = datetime(2026, 3, 1, 12, 30, 0, tzinfo=timezone.utc)
        assert minute_bucket(start) == minute_bucket(start + timedelta(seconds=59))
        assert minute_bucket(start + timedelta(seconds=60)) == minute_bucket(start) + 1

    def test_month_bucket_uses_utc(self) -> None:
        late_local = datetime(2026, 1, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert month_bucket(late_local) == "2026-02"
        assert month_bucket(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)) == "2026-12"

    def test_key_names(self) -> None:
        assert rate_key("203.0.113.7", 29000000) == "rate:203.0.113.7:29000000"
        assert quota_key("203.0.113.7", "2026-10") == "quota:203.0.113.7:2026-10"
        assert circuit_key("2026-10") == "circuit:2026-10"


class TestMemoryStoreProperty:
    """
    Property-based tests for the in-memory backend.

    **Property 3: Values are returned until their TTL elapses, then vanish**
    """

    @given(
        ttl=st.integers(min_value=1, max_value=10**6),
        elapsed=st.floats(min_value=0, max_value=2 * 10**6, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_expiry(self, ttl: int, elapsed: float) -> None:
        clock = FakeClock(start=0.0)
        store = MemoryCounterStore(clock=clock)

        async def run_test():
            await store.put("k", "v", ttl)
            clock.now += elapsed
            return await store.get("k")

        value = asyncio.run(run_test())

        if elapsed < ttl:
            assert value == "v"
        else:
            assert value is None

    def test_put_overwrites_and_resets_ttl(self) -> None:
        clock = FakeClock()
        store = MemoryCounterStore(clock=clock)

        async def run_test():
            await store.put("k", "1", 10)
            clock.now += 8
            await store.put("k", "2", 10)
            clock.now += 8
            return await store.get("k")

        assert asyncio.run(run_test()) == "2"
        assert store.ttl_of("k") == 2

    def test_failure_switches(self) -> None:
        store = MemoryCounterStore()
        store.fail_reads = True
        store.fail_writes = True

        async def run_test():
            errors = []
            for op in (store.get("k"), store.put("k", "v", 10)):
                try:
                    await op
                except StoreError as e:
                    errors.append(e.code)
            return errors

        assert asyncio.run(run_test()) == ["store_error", "store_error"]
        assert store.keys() == []

    @given(minutes=st.integers(min_value=3, max_value=500))
    @settings(max_examples=20)
    def test_unread_minute_buckets_are_reclaimed(self, minutes: int) -> None:
        """Old rate buckets are never read again; writes must still drop them."""
        clock = FakeClock(start=0.0)
        store = MemoryCounterStore(clock=clock)

        async def run_test():
            for minute in range(minutes):
                await store.put(rate_key("c", minute), encode_count(1), 120)
                assert len(store.keys()) <= 3
                clock.now += 60

        asyncio.run(run_test())

        assert rate_key("c", minutes - 1) in store.keys()
        assert rate_key("c", 0) not in store.keys()

    def test_sweep_keeps_live_keys(self) -> None:
        clock = FakeClock(start=0.0)
        store = MemoryCounterStore(clock=clock)

        async def run_test():
            await store.put("short", "1", 30)
            await store.put("long", "1", 3600)
            clock.now += MemoryCounterStore.SWEEP_INTERVAL_SECONDS
            await store.put("new", "1", 30)

        asyncio.run(run_test())

        assert sorted(store.keys()) == ["long", "new"]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryCounterStore(), CounterStore)


class TestRedisStoreProperty:
    """
    Tests for the Redis backend against client doubles.

    **Property 4: Writes use SET with EX; backend failures become StoreError**
    """

    def test_put_sets_expiry(self) -> None:
        client = RecordingRedis()
        store = RedisCounterStore(client=client)

        async def run_test():
            await store.put("quota:c:2026-10", encode_count(3), 5184000)
            return await store.get("quota:c:2026-10")

        assert asyncio.run(run_test()) == '{"count": 3}'
        assert client.expiry["quota:c:2026-10"] == 5184000

    def test_missing_key(self) -> None:
        store = RedisCounterStore(client=RecordingRedis())
        assert asyncio.run(store.get("absent")) is None

    @given(error=st.sampled_from([RedisConnectionError("down"), OSError("reset"), TimeoutError("slow")]))
    def test_errors_translated(self, error: Exception) -> None:
        store = RedisCounterStore(client=FailingRedis(error))

        async def run_test():
            codes = []
            for op in (store.get("k"), store.put("k", "v", 10)):
                try:
                    await op
                except StoreError as e:
                    codes.append(e.details["backend"])
            return codes

        assert asyncio.run(run_test()) == ["redis", "redis"]

    def test_close(self) -> None:
        client = FailingRedis(OSError())
        store = RedisCounterStore(client=client)
        asyncio.run(store.close())
        assert client.closed

    def test_requires_url_or_client(self) -> None:
        try:
            RedisCounterStore()
        except ValueError:
            return
        raise AssertionError("Expected ValueError")

    def test_satisfies_protocol(self) -> None:
        assert isinstance(RedisCounterStore(client=RecordingRedis()), CounterStore)
