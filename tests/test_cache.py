"""Tests for the TTL cache."""

import pytest

from ats_tailor.cache.ttl_cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(60, clock=clock)


class TestTTLCache:
    def test_loader_called_once_while_fresh(self, cache, clock):
        calls = []

        def loader():
            calls.append(1)
            return "value"

        assert cache.get("k", loader) == "value"
        clock.now += 59
        assert cache.get("k", loader) == "value"
        assert len(calls) == 1

    def test_expired_entry_reloaded(self, cache, clock):
        values = iter(["first", "second"])
        cache.get("k", lambda: next(values))
        clock.now += 60
        assert cache.get("k", lambda: next(values)) == "second"

    def test_zero_ttl_never_caches(self, clock):
        cache = TTLCache(0, clock=clock)
        values = iter([1, 2])
        assert cache.get("k", lambda: next(values)) == 1
        assert cache.get("k", lambda: next(values)) == 2

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(-1)

    def test_loader_error_not_cached(self, cache):
        def boom():
            raise RuntimeError("down")

        with pytest.raises(RuntimeError):
            cache.get("k", boom)
        assert cache.get("k", lambda: "ok") == "ok"

    def test_invalidate(self, cache):
        cache.get("k", lambda: 1)
        cache.invalidate("k")
        cache.invalidate("missing")
        assert cache.get("k", lambda: 2) == 2

    def test_clear_and_stats(self, cache, clock):
        cache.get("a", lambda: 1)
        clock.now += 30
        cache.get("b", lambda: 2)
        clock.now += 40
        assert cache.stats() == {"total": 2, "expired": 1, "active": 1}
        assert cache.clear() == 2
        assert cache.stats()["total"] == 0


async def test_aget_awaits_loader_once(cache):
    calls = []

    async def loader():
        calls.append(1)
        return {"title": "DBA"}

    first = await cache.aget("url", loader)
    second = await cache.aget("url", loader)
    assert first is second
    assert len(calls) == 1
