"""
Unit tests for the forecast cache store.
"""
import threading

from forecast_cache.cache import CacheEntry, CacheStore


def make_entry(key="k", stored_at=1000.0, ttl_ms=60000.0, body=None):
    return CacheEntry(key=key, stored_at=stored_at, ttl_ms=ttl_ms, body=body or {"temp": 5})


class TestCacheEntryFreshness:
    def test_fresh_within_ttl(self):
        entry = make_entry(stored_at=1000.0, ttl_ms=60000.0)
        assert entry.is_fresh(1059.0)

    def test_stale_exactly_at_ttl(self):
        """Age equal to the TTL is already stale."""
        entry = make_entry(stored_at=1000.0, ttl_ms=60000.0)
        assert not entry.is_fresh(1060.0)

    def test_stale_after_ttl(self):
        entry = make_entry(stored_at=1000.0, ttl_ms=60000.0)
        assert not entry.is_fresh(1060.001)

    def test_age_ms(self):
        entry = make_entry(stored_at=1000.0)
        assert entry.age_ms(1002.5) == 2500.0


class TestCacheStoreOperations:
    def setup_method(self):
        """Setup test fixtures."""
        self.store = CacheStore()

    def test_new_store_is_empty(self):
        assert len(self.store) == 0
        assert self.store.entries() == []

    def test_put_and_get(self):
        entry = make_entry()
        self.store.put("k", entry)

        assert self.store.get("k") is entry
        assert "k" in self.store

    def test_get_missing_key(self):
        assert self.store.get("missing") is None

    def test_put_overwrites(self):
        self.store.put("k", make_entry(body={"v": 1}))
        newer = make_entry(body={"v": 2})
        self.store.put("k", newer)

        assert self.store.get("k") is newer
        assert len(self.store) == 1

    def test_delete(self):
        self.store.put("k", make_entry())

        assert self.store.delete("k") is True
        assert self.store.get("k") is None
        assert self.store.delete("k") is False

    def test_delete_only_if_same_entry(self):
        """A refreshed entry is not removed by a delete aimed at the old one."""
        old = make_entry(body={"v": 1})
        new = make_entry(body={"v": 2})
        self.store.put("k", old)
        self.store.put("k", new)

        assert self.store.delete("k", old) is False
        assert self.store.get("k") is new
        assert self.store.delete("k", new) is True

    def test_entries_is_a_snapshot(self):
        self.store.put("a", make_entry(key="a"))
        self.store.put("b", make_entry(key="b"))

        snapshot = self.store.entries()
        self.store.delete("a")

        assert sorted(key for key, _ in snapshot) == ["a", "b"]
        assert len(self.store) == 1

    def test_clear(self):
        self.store.put("a", make_entry(key="a"))
        self.store.put("b", make_entry(key="b"))

        assert self.store.clear() == 2
        assert len(self.store) == 0


class TestCacheStoreConcurrency:
    def test_concurrent_writers(self):
        store = CacheStore()

        def writer(prefix):
            for i in range(200):
                store.put(f"{prefix}{i}", make_entry(key=f"{prefix}{i}"))

        threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store) == 800
