import pytest

from argscope.cache import ResultCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResultCache(max_duration=600, default_duration=60, clock=clock)


def test_put_and_get(cache):
    assert cache.put("ls", ["-a", "-l"], 30) == ["-a", "-l"]
    assert cache.get("ls") == ["-a", "-l"]
    assert "ls" in cache
    assert len(cache) == 1


def test_get_missing_returns_default(cache):
    assert cache.get("nope") is None
    assert cache.get("nope", "fallback") == "fallback"
    assert "nope" not in cache


def test_entry_expires(cache, clock):
    cache.put("ls", "value", 30)
    clock.advance(29.9)
    assert cache.get("ls") == "value"
    clock.advance(0.1)
    assert cache.get("ls") is None
    assert len(cache) == 0


def test_default_duration_applies(cache, clock):
    cache.put("ls", "value")
    clock.advance(59)
    assert "ls" in cache
    clock.advance(1)
    assert "ls" not in cache


def test_duration_clamped_to_max(cache, clock):
    cache.put("ls", "value", 10_000)
    clock.advance(599)
    assert "ls" in cache
    clock.advance(1)
    assert "ls" not in cache


def test_zero_duration_is_not_cached(cache):
    assert cache.put("ls", "value", 0) == "value"
    assert "ls" not in cache


def test_cached_computes_once(cache):
    calls = []

    def compute():
        calls.append(1)
        return "options"

    assert cache.cached(("extracted", "ls"), compute) == "options"
    assert cache.cached(("extracted", "ls"), compute) == "options"
    assert len(calls) == 1


def test_cached_recomputes_after_expiry(cache, clock):
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.cached("key", compute, 5) == 1
    clock.advance(5)
    assert cache.cached("key", compute, 5) == 2


def test_cached_none_value_is_kept(cache):
    calls = []

    def compute():
        calls.append(1)
        return None

    cache.cached("key", compute)
    cache.cached("key", compute)
    assert len(calls) == 1


def test_flush_removes_only_expired(cache, clock):
    cache.put("short", 1, 10)
    cache.put("long", 2, 100)
    clock.advance(50)
    assert cache.flush() == 1
    assert "short" not in cache
    assert cache.get("long") == 2


def test_flush_force_removes_everything(cache):
    cache.put("a", 1)
    cache.put("b", 2)
    assert cache.flush(force=True) == 2
    assert len(cache) == 0


def test_discard(cache):
    cache.put("a", 1)
    assert cache.discard("a") is True
    assert cache.discard("a") is False


def test_str(cache):
    cache.put("a", 1)
    assert "entries=1" in str(cache)
