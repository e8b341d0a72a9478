import threading
import time

import pytest

from codesmith.core.cache import OnceCache


def test_factory_runs_once_per_key() -> None:
    cache: OnceCache[str, int] = OnceCache()
    calls: list[str] = []

    def factory() -> int:
        calls.append("x")
        return 42

    assert cache.get_or_create("x", factory) == 42
    assert cache.get_or_create("x", factory) == 42
    assert calls == ["x"]
    assert (cache.hits, cache.misses) == (1, 1)
    assert "x" in cache and len(cache) == 1


def test_concurrent_first_requests_share_one_computation() -> None:
    cache: OnceCache[str, object] = OnceCache()
    calls: list[int] = []
    results: list[object] = []
    barrier = threading.Barrier(8)

    def factory() -> object:
        calls.append(1)
        time.sleep(0.05)
        return object()

    def worker() -> None:
        barrier.wait()
        results.append(cache.get_or_create("theme", factory))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert len(results) == 8
    assert all(result is results[0] for result in results)


def test_failed_factory_can_be_retried() -> None:
    cache: OnceCache[str, int] = OnceCache()

    def failing() -> int:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cache.get_or_create("k", failing)
    assert "k" not in cache
    assert cache.get_or_create("k", lambda: 7) == 7


def test_least_recently_used_entries_are_evicted() -> None:
    cache: OnceCache[str, int] = OnceCache(maxsize=2)
    cache.get_or_create("a", lambda: 1)
    cache.get_or_create("b", lambda: 2)
    cache.get_or_create("a", lambda: 1)
    cache.get_or_create("c", lambda: 3)

    assert "a" in cache and "c" in cache
    assert "b" not in cache

    cache.clear()
    assert len(cache) == 0 and cache.hits == 0
