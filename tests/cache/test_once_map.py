import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from tplc.cache import OnceMap


class TestOnceMap:
    def setup_method(self):
        self.calls = []
        self.m = OnceMap(name="test")

    def _compute(self, key):
        self.calls.append(key)
        return {"key": key}

    def test_same_key_returns_identical_object(self):
        a = self.m.get_or_try_insert("k", self._compute)
        b = self.m.get_or_try_insert("k", self._compute)
        assert a is b
        assert self.calls == ["k"]

    def test_distinct_keys_compute_separately(self):
        a = self.m.get_or_try_insert("a", self._compute)
        b = self.m.get_or_try_insert("b", self._compute)
        assert a is not b
        assert len(self.m) == 2
        assert "a" in self.m and "b" in self.m

    def test_failure_is_not_cached(self):
        def failing(key):
            self.calls.append(key)
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            self.m.get_or_try_insert("k", failing)
        assert "k" not in self.m

        value = self.m.get_or_try_insert("k", self._compute)
        assert value == {"key": "k"}
        assert self.calls == ["k", "k"]

    def test_clear_forgets_values(self):
        first = self.m.get_or_try_insert("k", self._compute)
        self.m.clear()
        assert len(self.m) == 0
        assert self.m.get("k") is None
        assert self.m.get_or_try_insert("k", self._compute) is not first

    def test_values_snapshot(self):
        self.m.get_or_try_insert("a", self._compute)
        snapshot = self.m.values()
        self.m.get_or_try_insert("b", self._compute)
        assert snapshot == [{"key": "a"}]


class TestOnceMapConcurrency:
    def test_concurrent_callers_share_one_computation(self):
        m = OnceMap()
        started = threading.Event()
        release = threading.Event()
        counter = []

        def slow(key):
            counter.append(key)
            started.set()
            release.wait(5)
            return object()

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(m.get_or_try_insert, "k", slow) for _ in range(8)]
            assert started.wait(5)
            time.sleep(0.05)
            release.set()
            results = [f.result(timeout=5) for f in futures]

        assert len(counter) == 1
        assert all(r is results[0] for r in results)

    def test_waiter_takes_over_after_failure(self):
        m = OnceMap()
        started = threading.Event()
        release = threading.Event()
        attempts = []

        def flaky(key):
            attempts.append(key)
            if len(attempts) == 1:
                started.set()
                release.wait(5)
                raise RuntimeError("first attempt fails")
            return "ok"

        with ThreadPoolExecutor(max_workers=2) as pool:
            first = pool.submit(m.get_or_try_insert, "k", flaky)
            assert started.wait(5)
            second = pool.submit(m.get_or_try_insert, "k", flaky)
            time.sleep(0.05)
            release.set()
            with pytest.raises(RuntimeError, match="first attempt"):
                first.result(timeout=5)
            assert second.result(timeout=5) == "ok"

        assert len(attempts) == 2

    def test_different_keys_do_not_block_each_other(self):
        m = OnceMap()
        release = threading.Event()

        def blocked(key):
            release.wait(5)
            return key

        with ThreadPoolExecutor(max_workers=2) as pool:
            slow = pool.submit(m.get_or_try_insert, "slow", blocked)
            fast = m.get_or_try_insert("fast", lambda k: k.upper())
            assert fast == "FAST"
            assert not slow.done()
            release.set()
            assert slow.result(timeout=5) == "slow"

    def test_clear_during_compute_does_not_store(self):
        m = OnceMap()
        started = threading.Event()
        release = threading.Event()

        def slow(key):
            started.set()
            release.wait(5)
            return "stale"

        with ThreadPoolExecutor(max_workers=1) as pool:
            running = pool.submit(m.get_or_try_insert, "k", slow)
            assert started.wait(5)
            m.clear()
            release.set()
            assert running.result(timeout=5) == "stale"

        assert "k" not in m
        assert len(m) == 0
        assert m.get_or_try_insert("k", lambda k: "fresh") == "fresh"

    def test_caller_after_clear_does_not_wait_for_old_compute(self):
        m = OnceMap()
        started = threading.Event()
        release = threading.Event()

        def slow(key):
            started.set()
            release.wait(5)
            return "old"

        with ThreadPoolExecutor(max_workers=1) as pool:
            running = pool.submit(m.get_or_try_insert, "k", slow)
            assert started.wait(5)
            m.clear()
            assert m.get_or_try_insert("k", lambda k: "new") == "new"
            release.set()
            assert running.result(timeout=5) == "old"

        assert m.get("k") == "new"
