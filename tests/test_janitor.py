"""
Tests for the periodic cache sweep.
"""
import threading
import time
from unittest.mock import patch

from forecast_cache.cache import CacheEntry, CacheStore
from forecast_cache.janitor import DEFAULT_SWEEP_INTERVAL_SECONDS, JanitorTask


def put_entry(store, key, stored_at, ttl_ms):
    store.put(key, CacheEntry(key=key, stored_at=stored_at, ttl_ms=ttl_ms, body={"k": key}))


class TestJanitorSweep:
    def setup_method(self):
        """Setup test fixtures."""
        self.store = CacheStore()
        self.now = 10_000.0
        self.janitor = JanitorTask(self.store, clock=lambda: self.now)

    def test_default_interval_is_twelve_hours(self):
        assert self.janitor.interval_seconds == 12 * 60 * 60
        assert DEFAULT_SWEEP_INTERVAL_SECONDS == 43200

    def test_sweep_keeps_only_unexpired_entry(self):
        put_entry(self.store, "expired-1", stored_at=self.now - 120, ttl_ms=60_000)
        put_entry(self.store, "expired-2", stored_at=self.now - 3600, ttl_ms=594_000)
        put_entry(self.store, "fresh", stored_at=self.now - 30, ttl_ms=60_000)

        evicted = self.janitor.run_once()

        assert evicted == 2
        assert [key for key, _ in self.store.entries()] == ["fresh"]

    def test_sweep_uses_each_entry_ttl(self):
        put_entry(self.store, "short", stored_at=self.now - 10, ttl_ms=5_000)
        put_entry(self.store, "long", stored_at=self.now - 10, ttl_ms=50_000)

        self.janitor.run_once()

        assert "short" not in self.store
        assert "long" in self.store

    def test_sweep_on_empty_store(self):
        assert self.janitor.run_once() == 0


class TestJanitorLifecycle:
    def test_ticks_until_stopped(self):
        store = CacheStore()
        put_entry(store, "old", stored_at=time.time() - 10, ttl_ms=1)
        janitor = JanitorTask(store, interval_seconds=0.01)

        janitor.start()
        try:
            deadline = time.time() + 5
            while "old" in store and time.time() < deadline:
                time.sleep(0.01)
            assert "old" not in store
            assert janitor.running
        finally:
            janitor.stop()

        assert not janitor.running

    def test_no_ticks_after_stop(self):
        store = CacheStore()
        janitor = JanitorTask(store, interval_seconds=0.01)
        calls = []

        with patch.object(janitor, "run_once", side_effect=lambda: calls.append(1)):
            janitor.start()
            time.sleep(0.05)
            janitor.stop()
            count = len(calls)
            time.sleep(0.05)

        assert len(calls) == count

    def test_failing_sweep_does_not_stop_timer(self):
        store = CacheStore()
        janitor = JanitorTask(store, interval_seconds=0.01)
        ticks = threading.Semaphore(0)
        calls = []

        def flaky_sweep():
            calls.append(1)
            ticks.release()
            if len(calls) == 1:
                raise RuntimeError("sweep blew up")
            return 0

        with patch.object(janitor, "run_once", side_effect=flaky_sweep):
            janitor.start()
            try:
                assert ticks.acquire(timeout=5)
                assert ticks.acquire(timeout=5)
            finally:
                janitor.stop()

        assert len(calls) >= 2

    def test_stop_before_start_is_harmless(self):
        JanitorTask(CacheStore()).stop()

    def test_start_twice_keeps_one_thread(self):
        janitor = JanitorTask(CacheStore(), interval_seconds=60)
        janitor.start()
        try:
            first = janitor._thread
            janitor.start()
            assert janitor._thread is first
        finally:
            janitor.stop()

    def test_stop_is_prompt_with_long_interval(self):
        janitor = JanitorTask(CacheStore(), interval_seconds=3600)
        janitor.start()

        started = time.time()
        janitor.stop()

        assert time.time() - started < 2
        assert not janitor.running
