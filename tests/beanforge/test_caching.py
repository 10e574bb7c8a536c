"""Tests for beanforge.caching.SingleFlightCache."""

from __future__ import annotations

import threading
import time

import pytest

from beanforge.caching import SingleFlightCache


class TestSingleFlightCache:
    """Tests for get-or-compute semantics."""

    def test_factory_runs_once_per_key(self) -> None:
        """Repeated lookups return the first computed object."""
        cache: SingleFlightCache[str, list[int]] = SingleFlightCache(name="test")
        calls = 0

        def factory() -> list[int]:
            nonlocal calls
            calls += 1
            return [calls]

        first = cache.get_or_compute("key", factory)
        second = cache.get_or_compute("key", factory)

        assert first is second
        assert calls == 1
        assert "key" in cache
        assert len(cache) == 1

    def test_failed_factory_leaves_key_unpopulated(self) -> None:
        """A raising factory is retried by the next caller."""
        cache: SingleFlightCache[str, int] = SingleFlightCache()

        def boom() -> int:
            msg = "transient"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="transient"):
            cache.get_or_compute("key", boom)

        assert "key" not in cache
        assert cache.get_or_compute("key", lambda: 7) == 7

    def test_clear_drops_entries(self) -> None:
        """clear() empties the cache."""
        cache: SingleFlightCache[int, int] = SingleFlightCache(name="cleared")
        cache.get_or_compute(1, lambda: 1)
        cache.clear()
        assert len(cache) == 0
        assert cache.name == "cleared"


class TestSingleFlightConcurrency:
    """Tests for concurrent callers."""

    def test_concurrent_misses_compute_once(self) -> None:
        """N threads missing the same key share one computation."""
        cache: SingleFlightCache[str, object] = SingleFlightCache()
        calls = 0
        barrier = threading.Barrier(8)

        def factory() -> object:
            nonlocal calls
            calls += 1
            time.sleep(0.05)
            return object()

        results: list[object] = []

        def _call() -> None:
            barrier.wait()
            results.append(cache.get_or_compute("shared", factory))

        threads = [threading.Thread(target=_call) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert calls == 1
        assert len(results) == 8
        assert all(result is results[0] for result in results)

    def test_slow_key_does_not_block_other_keys(self) -> None:
        """A computation in progress for one key leaves other keys available."""
        cache: SingleFlightCache[str, str] = SingleFlightCache()
        started = threading.Event()
        release = threading.Event()

        def slow() -> str:
            started.set()
            release.wait(timeout=5)
            return "slow"

        worker = threading.Thread(target=lambda: cache.get_or_compute("slow", slow))
        worker.start()
        assert started.wait(timeout=5)

        assert cache.get_or_compute("fast", lambda: "fast") == "fast"
        assert "slow" not in cache

        release.set()
        worker.join(timeout=5)
        assert cache.get_or_compute("slow", lambda: "other") == "slow"

    def test_reentrant_lookup_on_the_computing_thread(self) -> None:
        """A factory asking for its own key gets an uncached computation, not a deadlock."""
        cache: SingleFlightCache[str, str] = SingleFlightCache()
        depth = 0

        def factory() -> str:
            nonlocal depth
            depth += 1
            if depth == 1:
                return f"outer({cache.get_or_compute('key', factory)})"
            return "inner"

        results: list[str] = []
        worker = threading.Thread(
            target=lambda: results.append(cache.get_or_compute("key", factory)), daemon=True
        )
        worker.start()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert results == ["outer(inner)"]
        assert cache.get_or_compute("key", factory) == "outer(inner)"
        assert depth == 2
