"""Tests for the terminal metadata cache."""

from datetime import timedelta

import pytest

from chatrelay.core.agent import MetadataCache, TerminalMetadata
from chatrelay.core.agent.cache import mask_credential


class _FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _terminal(name: str = "Guichê 1") -> TerminalMetadata:
    return TerminalMetadata.model_validate(
        {
            "id": 7,
            "name": name,
            "provider": {"id": 1, "name": "Filazero"},
            "location": {"id": 2, "name": "Centro"},
        }
    )


@pytest.fixture
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture
def cache(clock) -> MetadataCache:
    return MetadataCache(ttl=timedelta(minutes=5), clock=clock)


class TestMetadataCache:
    def test_miss_on_empty(self, cache):
        assert cache.get("key-1") is None

    def test_hit_within_ttl(self, cache, clock):
        cache.put("key-1", _terminal())
        clock.now += 299

        assert cache.get("key-1") == _terminal()

    def test_expires_at_ttl(self, cache, clock):
        cache.put("key-1", _terminal())
        clock.now += 300

        assert cache.get("key-1") is None
        assert len(cache) == 0

    def test_put_refreshes_timestamp(self, cache, clock):
        cache.put("key-1", _terminal("old"))
        clock.now += 200
        cache.put("key-1", _terminal("new"))
        clock.now += 200

        cached = cache.get("key-1")
        assert cached is not None
        assert cached.name == "new"

    def test_invalidate_one(self, cache):
        cache.put("key-1", _terminal())
        cache.put("key-2", _terminal())

        assert cache.invalidate("key-1") == 1
        assert cache.invalidate("key-1") == 0
        assert cache.get("key-1") is None
        assert cache.get("key-2") is not None

    def test_invalidate_all(self, cache):
        cache.put("key-1", _terminal())
        cache.put("key-2", _terminal())

        assert cache.invalidate() == 2
        assert len(cache) == 0

    def test_entries_are_masked_and_skip_expired(self, cache, clock):
        cache.put("abcdefgh", _terminal("Guichê 1"))
        clock.now += 400
        cache.put("zyxwvuts", _terminal("Guichê 2"))
        clock.now += 10

        [entry] = cache.entries()

        assert entry.credential == "zyxw****"
        assert entry.terminal_name == "Guichê 2"
        assert entry.age_seconds == 10
        assert entry.expires_in_seconds == 290

    def test_lock_is_per_credential(self, cache):
        assert cache.lock_for("a") is cache.lock_for("a")
        assert cache.lock_for("a") is not cache.lock_for("b")

    def test_put_prunes_expired_entries(self, cache, clock):
        for i in range(3):
            cache.put(f"old-{i}", _terminal())
        clock.now += 300

        cache.put("fresh", _terminal())

        assert len(cache) == 1
        assert cache.get("fresh") is not None

    def test_idle_locks_of_uncached_keys_are_dropped(self, cache):
        for i in range(50):
            cache.lock_for(f"failed-{i}")

        cache.lock_for("next")

        assert set(cache._locks) == {"next"}

    @pytest.mark.asyncio
    async def test_held_lock_survives_pruning(self, cache):
        held = cache.lock_for("busy")
        async with held:
            cache.lock_for("other")
            assert cache.lock_for("busy") is held


class TestMaskCredential:
    def test_short_credential_fully_masked(self):
        assert mask_credential("abc") == "***"

    def test_keeps_prefix(self):
        assert mask_credential("abcdef") == "abcd**"
