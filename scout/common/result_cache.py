"""
Result Cache

In-memory TTL cache for deep-research results, keyed by a hash of
(query, filter). The one piece of state shared across requests.

Concurrency: get_or_compute() holds a per-key asyncio.Lock across
check -> compute -> store, so identical concurrent requests compute once
per TTL window. Nothing is stored when the computation raises or is
cancelled.
"""

import asyncio
import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger("scout.common.result_cache")


def make_cache_key(query: str, filter_data: Optional[Dict[str, Any]] = None, **extra: Any) -> str:
    """SHA-256 over a canonical JSON rendering of the request."""
    key_data = {"query": query, "filter": filter_data or {}, **extra}
    key_string = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.sha256(key_string.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    value: Any
    expires_at: float
    hits: int = 0


class ResultCache:
    """
    TTL-bounded, size-bounded result cache.

    Oldest entries are evicted first once max_entries is reached.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats["misses"] += 1
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self._stats["misses"] += 1
            return None
        entry.hits += 1
        self._stats["hits"] += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        self._entries.move_to_end(key)
        self._stats["sets"] += 1
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            self._stats["evictions"] += 1

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for key, computing and storing it once if missing."""
        value = self.get(key)
        if value is not None:
            return value

        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another waiter may have filled the slot while we queued.
                value = self.get(key)
                if value is not None:
                    return value
                value = await factory()
                self.set(key, value)
                return value
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def stats(self) -> Dict[str, Any]:
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "size": len(self._entries),
            "hit_rate": (self._stats["hits"] / lookups) if lookups else 0.0,
        }
