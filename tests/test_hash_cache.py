"""Tests for the remote fingerprint cache."""

from __future__ import annotations

import pytest

from snipsync.sync.cache import DEFAULT_TTL_SECONDS, HashCache
from snipsync.sync.fingerprints import HashVariant


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _cache(**kwargs) -> tuple[HashCache, FakeClock]:
    clock = FakeClock()
    return HashCache(clock=clock, **kwargs), clock


def test_put_then_get_returns_value():
    cache, _ = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")

    assert cache.get("a.css", "sha1", HashVariant.FAST) == "0011aabb"


def test_get_after_ttl_returns_none_and_drops_entry():
    cache, clock = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")

    clock.advance(DEFAULT_TTL_SECONDS - 1)
    assert cache.get("a.css", "sha1", HashVariant.FAST) == "0011aabb"

    clock.advance(1)
    assert cache.get("a.css", "sha1", HashVariant.FAST) is None
    assert len(cache) == 0


def test_default_ttl_is_five_minutes():
    assert DEFAULT_TTL_SECONDS == 300
    assert HashCache().ttl == 300


def test_variants_are_cached_separately():
    cache, _ = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")

    assert cache.get("a.css", "sha1", HashVariant.SECURE) is None
    cache.put("a.css", "sha1", HashVariant.SECURE, "0011aabb-00000000-11111111")
    assert cache.get("a.css", "sha1", "secure") == "0011aabb-00000000-11111111"


def test_new_identity_misses_stale_fingerprint():
    cache, _ = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")

    assert cache.get("a.css", "sha2", HashVariant.FAST) is None


def test_paths_sharing_an_identity_do_not_alias():
    cache, _ = _cache()
    cache.put("a.css", "shared-sha", HashVariant.FAST, "0011aabb")

    assert cache.get("b.css", "shared-sha", HashVariant.FAST) is None
    cache.put("b.css", "shared-sha", HashVariant.FAST, "ffffffff")
    assert cache.get("a.css", "shared-sha", HashVariant.FAST) == "0011aabb"
    assert cache.get("b.css", "shared-sha", HashVariant.FAST) == "ffffffff"


def test_put_replaces_existing_entry_with_fresh_timestamp():
    cache, clock = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")
    clock.advance(200)
    cache.put("a.css", "sha1", HashVariant.FAST, "22334455")
    clock.advance(200)

    assert cache.get("a.css", "sha1", HashVariant.FAST) == "22334455"


def test_clear_drops_everything():
    cache, _ = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")
    cache.put("b.css", "sha2", HashVariant.FAST, "22334455")

    cache.clear()

    assert len(cache) == 0
    assert cache.get("a.css", "sha1", HashVariant.FAST) is None


def test_put_purges_expired_entries():
    cache, clock = _cache()
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")
    clock.advance(DEFAULT_TTL_SECONDS + 1)

    cache.put("b.css", "sha2", HashVariant.FAST, "22334455")

    assert len(cache) == 1


def test_oldest_entry_evicted_when_full():
    cache, clock = _cache(max_items=2)
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")
    clock.advance(1)
    cache.put("b.css", "sha2", HashVariant.FAST, "22334455")
    clock.advance(1)
    cache.put("c.css", "sha3", HashVariant.FAST, "66778899")

    assert len(cache) == 2
    assert cache.get("a.css", "sha1", HashVariant.FAST) is None
    assert cache.get("c.css", "sha3", HashVariant.FAST) == "66778899"


def test_malformed_fingerprint_is_rejected():
    cache, _ = _cache()

    with pytest.raises(ValueError):
        cache.put("a.css", "sha1", HashVariant.FAST, "not-a-hash")

    assert len(cache) == 0


def test_stats_reports_size_and_limits():
    cache, _ = _cache(ttl=60, max_items=5)
    cache.put("a.css", "sha1", HashVariant.FAST, "0011aabb")

    assert cache.stats() == {"items": 1, "ttl": 60, "max_items": 5}
