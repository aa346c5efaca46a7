"""Time-bounded memo of remote snippet fingerprints."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .fingerprints import HashVariant, is_well_formed

logger = logging.getLogger("snipsync.sync.cache")

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_MAX_ITEMS = 1000

CacheKey = Tuple[str, str, HashVariant]


@dataclass(frozen=True)
class CacheEntry:
    """A fingerprint computed for one remote version of a snippet."""

    fingerprint: str
    computed_at: float


class HashCache:
    """Remembers remote fingerprints so unchanged files are not re-downloaded.

    Entries are keyed by ``(path, identity, variant)``. The identity is the
    version token the remote store assigns (a git blob sha for GitHub), so a
    remote edit produces a new key and the stale fingerprint is never hit.
    Including the path keeps two files that happen to share a token from
    reading each other's fingerprint.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_items = max_items
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    @staticmethod
    def _key(path: str, identity: str, variant: HashVariant) -> CacheKey:
        return (path, identity, HashVariant(variant))

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.computed_at < self.ttl

    def get(self, path: str, identity: str, variant: HashVariant) -> Optional[str]:
        """Return the cached fingerprint, or None when absent or expired."""
        key = self._key(path, identity, variant)
        entry = self._entries.get(key)
        if entry is None:
            return None

        if not self._is_fresh(entry, self._clock()):
            del self._entries[key]
            logger.debug("Expired cached fingerprint for %s@%s", path, identity)
            return None

        return entry.fingerprint

    def put(self, path: str, identity: str, variant: HashVariant, fingerprint: str) -> None:
        """Store ``fingerprint`` for the given remote version."""
        if not is_well_formed(fingerprint):
            raise ValueError(f"Refusing to cache malformed fingerprint {fingerprint!r}")

        now = self._clock()
        self._purge_expired(now)

        key = self._key(path, identity, variant)
        if key not in self._entries and len(self._entries) >= self.max_items:
            self._evict_oldest()

        self._entries[key] = CacheEntry(fingerprint=fingerprint, computed_at=now)

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared %d cached fingerprints", count)

    def stats(self) -> Dict[str, Any]:
        return {
            "items": len(self._entries),
            "ttl": self.ttl,
            "max_items": self.max_items,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for key in expired:
            del self._entries[key]

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        oldest = min(self._entries, key=lambda key: self._entries[key].computed_at)
        del self._entries[oldest]


__all__ = ["HashCache", "CacheEntry", "DEFAULT_TTL_SECONDS", "DEFAULT_MAX_ITEMS"]
