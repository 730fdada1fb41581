"""Tests for the TTL cache."""

from issue_relay.cache import DEFAULT_TTL, TTLCache

from conftest import FakeClock


def test_get_returns_live_value(clock: FakeClock) -> None:
    """Test a value is returned until its TTL elapses."""
    cache = TTLCache(clock=clock)
    cache.set("team:ENG", "engineering", ttl=10)

    clock.advance(9.9)
    assert cache.get("team:ENG") == "engineering"


def test_get_evicts_expired_entry(clock: FakeClock) -> None:
    """Test expired entries are removed when read."""
    cache = TTLCache(clock=clock)
    cache.set("team:ENG", "engineering", ttl=10)

    clock.advance(10)
    assert cache.get("team:ENG") is None
    assert len(cache) == 0


def test_set_overwrites_and_restarts_ttl(clock: FakeClock) -> None:
    """Test a second set replaces the value and its expiry."""
    cache = TTLCache(clock=clock)
    cache.set("key", "first", ttl=10)
    clock.advance(8)
    cache.set("key", "second", ttl=10)
    clock.advance(8)

    assert cache.get("key") == "second"


def test_missing_key() -> None:
    """Test reading a key that was never set."""
    cache = TTLCache()
    assert cache.get("nothing") is None
    assert "nothing" not in cache


def test_default_ttl_is_five_minutes(clock: FakeClock) -> None:
    """Test the default TTL."""
    cache = TTLCache(clock=clock)
    cache.set("key", "value")

    clock.advance(DEFAULT_TTL - 1)
    assert "key" in cache
    clock.advance(1)
    assert "key" not in cache
