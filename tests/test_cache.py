"""
Unit tests for the cache package: store, freshness rule, manager, coalescer.
"""
import threading
import traceback
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from weather_sdk.cache import (
    CacheEntry,
    CacheManager,
    CacheStore,
    DEFAULT_MAX_ENTRIES,
    DEFAULT_TTL_SECONDS,
    RequestCoalescer,
    is_fresh,
)
from weather_sdk.exceptions import (
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
    RemoteUnavailableError,
)


# =============================================================================
# Cache Store Tests
# =============================================================================

class TestCacheStore:
    """Tests for CacheStore."""

    def test_put_and_get(self, clock):
        store = CacheStore(max_entries=3, clock=clock)
        store.put("London", {"temp": 280})

        entry = store.get("London")
        assert entry.value == {"temp": 280}
        assert entry.fetched_at == clock()
        assert entry.error is None

    def test_get_missing_returns_none(self, clock):
        store = CacheStore(clock=clock)
        assert store.get("Paris") is None

    def test_keys_are_exact(self, clock):
        """Keys are case and whitespace sensitive."""
        store = CacheStore(clock=clock)
        store.put("London", 1)
        store.put("london", 2)
        store.put(" London", 3)

        assert len(store) == 3
        assert store.get("london").value == 2
        assert store.get(" London").value == 3

    def test_put_replaces_entry(self, clock):
        store = CacheStore(max_entries=2, clock=clock)
        store.put("London", 1)
        clock.advance(5)
        store.put("London", 2)

        entry = store.get("London")
        assert entry.value == 2
        assert entry.fetched_at == clock()
        assert len(store) == 1

    def test_size_never_exceeds_max(self, clock):
        store = CacheStore(max_entries=3, clock=clock)
        for i in range(20):
            clock.advance(1)
            store.put(f"city-{i % 7}", i)
            assert len(store) <= 3

    def test_evicts_oldest_fetch(self, clock):
        store = CacheStore(max_entries=3, clock=clock)
        store.put("A", 1)
        clock.advance(1)
        store.put("B", 2)
        clock.advance(1)
        store.put("C", 3)
        clock.advance(1)

        # Refetching A makes B the oldest
        store.put("A", 4)
        clock.advance(1)
        store.put("D", 5)

        assert set(store.keys()) == {"A", "C", "D"}
        assert store.evictions == 1

    def test_reads_do_not_change_eviction_order(self, clock):
        store = CacheStore(max_entries=2, clock=clock)
        store.put("A", 1)
        clock.advance(1)
        store.put("B", 2)
        clock.advance(1)

        for _ in range(5):
            store.get("A")
        store.put("C", 3)

        assert set(store.keys()) == {"B", "C"}

    def test_eviction_tie_breaks_by_insertion_order(self, clock):
        store = CacheStore(max_entries=2, clock=clock)
        store.put("first", 1)
        store.put("second", 2)
        store.put("third", 3)

        assert store.keys() == ["second", "third"]

    def test_replacing_existing_key_in_full_store_does_not_evict(self, clock):
        store = CacheStore(max_entries=2, clock=clock)
        store.put("A", 1)
        store.put("B", 2)
        store.put("A", 3)

        assert set(store.keys()) == {"A", "B"}
        assert store.evictions == 0

    def test_keys_is_snapshot(self, clock):
        store = CacheStore(clock=clock)
        store.put("A", 1)
        keys = store.keys()
        store.put("B", 2)

        assert keys == ["A"]

    def test_out_of_order_write_is_discarded(self, clock):
        store = CacheStore(clock=clock)
        assert store.put("A", "newer", sequence=5)
        assert not store.put("A", "older", sequence=3)

        assert store.get("A").value == "newer"

    def test_remove_and_clear(self, clock):
        store = CacheStore(clock=clock)
        store.put("A", 1)
        store.put("B", 2)

        assert store.remove("A")
        assert not store.remove("A")
        assert store.clear() == 1
        assert len(store) == 0

    def test_closed_store_rejects_writes(self, clock):
        store = CacheStore(clock=clock)
        store.put("A", 1)
        store.close()

        assert store.closed
        assert len(store) == 0
        assert not store.put("B", 2)
        assert store.get("B") is None

    def test_default_capacity_is_ten(self, clock):
        assert DEFAULT_MAX_ENTRIES == 10

        store = CacheStore(clock=clock)
        assert store.max_entries == 10
        for i in range(11):
            clock.advance(1)
            store.put(f"city-{i}", i)

        assert len(store) == 10
        assert "city-0" not in store

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            CacheStore(max_entries=0)

    def test_concurrent_puts_keep_size_bound(self):
        store = CacheStore(max_entries=5)

        def writer(n):
            for i in range(200):
                store.put(f"city-{(n * 200 + i) % 37}", i)
                assert len(store) <= 5

        with ThreadPoolExecutor(max_workers=8) as pool:
            for future in [pool.submit(writer, n) for n in range(8)]:
                future.result()

        assert len(store) == 5
        assert len(set(store.keys())) == 5


# =============================================================================
# Freshness Policy Tests
# =============================================================================

class TestFreshness:
    """Tests for is_fresh."""

    def test_default_ttl_is_ten_minutes(self):
        assert DEFAULT_TTL_SECONDS == 600

    def test_new_entry_is_fresh(self):
        entry = CacheEntry(value=1, fetched_at=100.0)
        assert is_fresh(entry, now=100.0, ttl_seconds=600)

    def test_just_under_ttl_is_fresh(self):
        entry = CacheEntry(value=1, fetched_at=100.0)
        assert is_fresh(entry, now=100.0 + 599, ttl_seconds=600)

    def test_exactly_ttl_is_stale(self):
        entry = CacheEntry(value=1, fetched_at=100.0)
        assert not is_fresh(entry, now=100.0 + 600, ttl_seconds=600)

    def test_past_ttl_is_stale(self):
        entry = CacheEntry(value=1, fetched_at=100.0)
        assert not is_fresh(entry, now=100.0 + 3600)


# =============================================================================
# Cache Manager Tests
# =============================================================================

@pytest.fixture
def manager(clock, fake_client):
    store = CacheStore(max_entries=10, clock=clock)
    return CacheManager(fake_client.fetch_weather, store=store, ttl_seconds=600)


class TestCacheManager:
    """Tests for CacheManager read and refresh paths."""

    def test_miss_fetches_once(self, manager, fake_client):
        data = manager.get("London")

        assert data.name == "London"
        assert fake_client.calls == ["London"]
        assert "London" in manager.store

    def test_fresh_hit_makes_no_fetch(self, manager, fake_client, clock):
        first = manager.get("London")
        clock.advance(599)
        second = manager.get("London")

        assert second is first
        assert fake_client.calls_for("London") == 1

    def test_stale_entry_refetched_once(self, manager, fake_client, clock):
        manager.get("London")
        clock.advance(600)
        data = manager.get("London")

        assert fake_client.calls_for("London") == 2
        assert data.id == 2

    def test_blank_key_rejected_before_fetch(self, manager, fake_client):
        for bad in (None, "", "   ", "\t\n"):
            with pytest.raises(InvalidInputError):
                manager.get(bad)
        assert fake_client.calls == []
        assert len(manager.store) == 0

    def test_failure_is_typed_and_cached(self, manager, fake_client, clock):
        fake_client.fail("Atlantis", NotFoundError(status_code=404))

        with pytest.raises(NotFoundError):
            manager.get("Atlantis")
        entry = manager.store.get("Atlantis")
        assert entry.is_failure
        assert entry.value is None

        # Within the TTL the failure is served from cache
        fake_client.succeed("Atlantis")
        clock.advance(10)
        with pytest.raises(NotFoundError):
            manager.get("Atlantis")
        assert fake_client.calls_for("Atlantis") == 1

        # Once stale it is retried
        clock.advance(600)
        assert manager.get("Atlantis").name == "Atlantis"
        assert fake_client.calls_for("Atlantis") == 2

    def test_cached_failure_raises_fresh_exception_each_read(self, manager, fake_client):
        fake_client.fail("Atlantis", NotFoundError(status_code=404))
        with pytest.raises(NotFoundError):
            manager.get("Atlantis")

        raised = []
        depths = []
        for _ in range(50):
            with pytest.raises(NotFoundError) as exc_info:
                manager.get("Atlantis")
            raised.append(exc_info.value)
            depths.append(len(traceback.extract_tb(exc_info.value.__traceback__)))

        assert len(set(depths)) == 1
        assert len({id(error) for error in raised}) == len(raised)
        assert all(error.status_code == 404 for error in raised)
        assert manager.store.get("Atlantis").error.__traceback__ is None
        assert fake_client.calls_for("Atlantis") == 1

    def test_failure_not_cached_keeps_previous_entry(self, clock, fake_client):
        store = CacheStore(clock=clock)
        manager = CacheManager(
            fake_client.fetch_weather, store=store, ttl_seconds=600, cache_failures=False
        )
        good = manager.get("London")
        clock.advance(600)

        fake_client.fail("London", RateLimitedError(status_code=429))
        with pytest.raises(RateLimitedError):
            manager.get("London")
        assert store.get("London").value is good

        # Not cached: the next read retries
        with pytest.raises(RateLimitedError):
            manager.get("London")
        assert fake_client.calls_for("London") == 3

    def test_unexpected_exception_becomes_remote_unavailable(self, clock):
        def broken(city):
            raise RuntimeError("socket exploded")

        manager = CacheManager(broken, store=CacheStore(clock=clock))
        with pytest.raises(RemoteUnavailableError) as exc_info:
            manager.get("London")
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_refresh_all_refetches_every_key(self, manager, fake_client):
        manager.get("X")
        manager.get("Y")

        results = manager.refresh_all()

        assert results == {"X": True, "Y": True}
        assert fake_client.calls_for("X") == 2
        assert fake_client.calls_for("Y") == 2

    def test_refresh_all_continues_after_failure(self, manager, fake_client):
        for city in ("A", "B", "C"):
            manager.get(city)
        fake_client.fail("B", RemoteUnavailableError(status_code=503))

        results = manager.refresh_all()

        assert results == {"A": True, "B": False, "C": True}
        assert fake_client.calls_for("C") == 2

    def test_slow_earlier_fetch_does_not_overwrite_newer(self, clock):
        release_slow = threading.Event()
        slow_started = threading.Event()
        counter = {"n": 0}
        lock = threading.Lock()

        def fetch(city):
            with lock:
                counter["n"] += 1
                n = counter["n"]
            if n == 1:
                slow_started.set()
                release_slow.wait(timeout=5)
            return f"result-{n}"

        store = CacheStore(clock=clock)
        manager = CacheManager(fetch, store=store)

        slow = threading.Thread(target=manager.refresh, args=("London",))
        slow.start()
        assert slow_started.wait(timeout=5)

        assert manager.refresh("London") == "result-2"
        release_slow.set()
        slow.join(timeout=5)

        assert store.get("London").value == "result-2"

    def test_concurrent_misses_without_coalescing_fetch_redundantly(self, clock, make_client):
        client = make_client(delay=0.05)
        manager = CacheManager(client.fetch_weather, store=CacheStore(clock=clock))
        barrier = threading.Barrier(5)

        def read(_):
            barrier.wait()
            return manager.get("London")

        with ThreadPoolExecutor(max_workers=5) as pool:
            list(pool.map(read, range(5)))

        # No de-duplication: every concurrent miss reaches upstream
        assert client.calls_for("London") > 1

    def test_concurrent_misses_with_coalescing_fetch_once(self, clock, make_client):
        client = make_client(delay=0.2)
        manager = CacheManager(
            client.fetch_weather, store=CacheStore(clock=clock), coalesce=True
        )
        barrier = threading.Barrier(5)

        def read(_):
            barrier.wait()
            return manager.get("London")

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(read, range(5)))

        assert client.calls_for("London") == 1
        assert all(r.id == 1 for r in results)

    def test_stats(self, manager, clock):
        manager.get("London")
        manager.get("London")

        stats = manager.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["entries"] == 1
        assert stats["hit_rate_percent"] == 50.0


# =============================================================================
# Coalescer Tests
# =============================================================================

class TestRequestCoalescer:
    """Tests for RequestCoalescer."""

    def test_single_caller_gets_result(self):
        coalescer = RequestCoalescer()
        assert coalescer.get_or_fetch("k", lambda: 42) == 42
        assert coalescer.active_requests == 0

    def test_error_propagates_to_all_waiters(self):
        coalescer = RequestCoalescer()
        started = threading.Event()

        def failing():
            started.set()
            time.sleep(0.1)
            raise NotFoundError(status_code=404)

        errors = []

        def call():
            try:
                coalescer.get_or_fetch("k", failing)
            except NotFoundError as e:
                errors.append(e)

        first = threading.Thread(target=call)
        first.start()
        started.wait(timeout=5)
        second = threading.Thread(target=call)
        second.start()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(errors) == 2
        assert coalescer.active_requests == 0

    def test_waiter_timeout(self):
        coalescer = RequestCoalescer(timeout=0.05)
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)
            return 1

        first = threading.Thread(target=coalescer.get_or_fetch, args=("k", slow))
        first.start()
        started.wait(timeout=5)
        try:
            with pytest.raises(RemoteUnavailableError):
                coalescer.get_or_fetch("k", slow)
        finally:
            release.set()
            first.join(timeout=5)
