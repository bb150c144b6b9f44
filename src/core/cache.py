"""
Response cache for slow upstream lookups.

Entries carry an absolute expiry and are only checked lazily on access: an
expired entry is discarded the next time its key is read and the read counts
as a miss. Nothing sweeps the map in the background; `sweep_expired` exists for
callers that want to reclaim memory explicitly.

All access happens on the event loop thread, so the map needs no lock. Two
concurrent misses on the same key may both run their computation; the last
write wins.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# TTLs by data volatility (seconds)
REFERENCE_TTL = 86400.0
LISTING_TTL = 300.0


def cache_key(namespace: str, *parts: Any) -> str:
    """Build a readable key: `namespace:part:part`, list parts joined by `-`."""
    segments = [namespace]
    for part in parts:
        if isinstance(part, (list, tuple)):
            segments.append("-".join(str(p) for p in part))
        else:
            segments.append(str(part))
    return ":".join(segments)


@dataclass
class CacheEntry:
    """Cached value with absolute expiry."""

    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """Key/value store with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        """Return the live value for key, or None on a miss."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key, replacing any previous value and expiry."""
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        logger.debug(f"Cache set for key: {key}, TTL: {ttl}s")

    async def get_or_compute(
        self, key: str, ttl: float, compute: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for key, computing and storing it on a miss.

        Exceptions raised by `compute` propagate and leave the cache untouched.
        """
        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(self._clock()):
                self.hits += 1
                logger.debug(f"Cache hit for key: {key}")
                return entry.value
            del self._entries[key]

        self.misses += 1
        logger.debug(f"Cache miss for key: {key}")
        value = await compute()
        self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys (live or not yet discarded) starting with prefix."""
        return sorted(key for key in self._entries if key.startswith(prefix))

    def sweep_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")

        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        total_entries = len(self._entries)
        expired_entries = sum(1 for entry in self._entries.values() if entry.is_expired(now))

        return {
            "total_entries": total_entries,
            "expired_entries": expired_entries,
            "active_entries": total_entries - expired_entries,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __len__(self) -> int:
        return len(self._entries)
