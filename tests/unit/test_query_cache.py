# =============================================================================
# tests/unit/test_query_cache.py
# Unit Tests for QueryCache
# =============================================================================

import threading
import time

import pytest

from dokan_core.offline.query_cache import QueryCache, make_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return QueryCache(clock=clock)


class TestQueryCacheFreshness:
    """Freshness windows"""

    def test_fresh_entry_is_reused(self, cache):
        calls = []

        def fetch():
            calls.append(1)
            return ["a"], 30.0

        key = make_key("sales", "u1", limit=10)
        assert cache.get_or_fetch(key, fetch) == ["a"]
        assert cache.get_or_fetch(key, fetch) == ["a"]
        assert len(calls) == 1
        assert cache.stats.hits == 1

    def test_expired_entry_is_refetched(self, cache, clock):
        results = iter([(["old"], 30.0), (["new"], 30.0)])
        key = make_key("sales", "u1")

        cache.get_or_fetch(key, lambda: next(results))
        clock.now += 31
        assert cache.get_or_fetch(key, lambda: next(results)) == ["new"]

    def test_no_stale_time_never_expires(self, cache, clock):
        key = make_key("stats", "u1")
        cache.get_or_fetch(key, lambda: ("offline", None))
        clock.now += 10 ** 6

        assert not cache.is_stale(key)

    def test_key_param_order_does_not_matter(self):
        assert make_key("sales", "u1", limit=5, today=True) == make_key("sales", "u1", today=True, limit=5)


class TestQueryCacheInvalidation:
    """Owner-scoped invalidation and optimistic updates"""

    def test_invalidate_only_touches_owner_and_entity(self, cache):
        mine = make_key("sales", "u1")
        theirs = make_key("sales", "u2")
        other_entity = make_key("customers", "u1")
        for key in (mine, theirs, other_entity):
            cache.set(key, [], stale_time=None)

        assert cache.invalidate("sales", "u1") == 1

        assert cache.is_stale(mine)
        assert not cache.is_stale(theirs)
        assert not cache.is_stale(other_entity)

    def test_invalidated_entry_keeps_data_for_peek(self, cache):
        key = make_key("sales", "u1")
        cache.set(key, ["x"])
        cache.invalidate_all()

        assert cache.peek(key) == ["x"]
        assert cache.is_stale(key)

    def test_update_data(self, cache):
        key = make_key("sales", "u1", limit=None)
        cache.set(key, [{"id": "1"}])

        cache.update_data("sales", "u1", lambda data: [{"id": "0"}] + data)

        assert cache.peek(key) == [{"id": "0"}, {"id": "1"}]

    def test_update_data_params_filter(self, cache):
        plain = make_key("sales", "u1", limit=None)
        limited = make_key("sales", "u1", limit=1)
        cache.set(plain, [{"id": "1"}])
        cache.set(limited, [{"id": "1"}])

        updated = cache.update_data(
            "sales", "u1", lambda data: [{"id": "0"}] + data,
            params_filter=lambda params: params["limit"] is None,
        )

        assert updated == 1
        assert cache.peek(plain) == [{"id": "0"}, {"id": "1"}]
        assert cache.peek(limited) == [{"id": "1"}]

    def test_failed_fetch_is_not_cached(self, cache):
        key = make_key("sales", "u1")

        def boom():
            raise RuntimeError("down")

        with pytest.raises(RuntimeError):
            cache.get_or_fetch(key, boom)
        assert cache.get_or_fetch(key, lambda: (["ok"], 30.0)) == ["ok"]


class TestQueryCacheConcurrency:
    """Concurrent readers share one in-flight fetch"""

    def test_concurrent_reads_share_fetch(self):
        cache = QueryCache()
        key = make_key("customers", "u1")
        calls = []
        started = threading.Event()

        def slow_fetch():
            calls.append(1)
            started.set()
            time.sleep(0.2)
            return ["shared"], 30.0

        results = []

        def reader():
            results.append(cache.get_or_fetch(key, slow_fetch))

        threads = [threading.Thread(target=reader) for _ in range(5)]
        threads[0].start()
        started.wait(timeout=2)
        for t in threads[1:]:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert results == [["shared"]] * 5
