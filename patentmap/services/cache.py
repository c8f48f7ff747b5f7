"""
Byte-oriented cache used for read-through/write-through of analysis results.

Provides:
- ConstellationCache: get/set/delete contract
- InMemoryConstellationCache: process-local TTL cache with a size cap
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from patentmap.config import settings

logger = logging.getLogger(__name__)


class ConstellationCache(Protocol):
    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class InMemoryConstellationCache:
    """
    Dict-backed cache with per-entry expiry and a size cap.

    Every ``set`` sweeps out expired entries; when the cache is still full
    the oldest entries are evicted. Suitable for a single worker process;
    entries are not shared across processes.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ) -> None:
        self._entries: Dict[str, Tuple[float, bytes]] = {}
        self._clock = clock
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES

    async def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        now = self._clock()
        self._purge_expired(now)

        # Re-inserting moves the key to the young end of the insertion order
        self._entries.pop(key, None)
        while self._entries and len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("cache full, evicted %s", oldest)
        self._entries[key] = (now + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("cache sweep dropped %d expired entries", len(expired))

    def __len__(self) -> int:
        return len(self._entries)


# Module-level singleton shared by request-scoped services
constellation_cache = InMemoryConstellationCache()
