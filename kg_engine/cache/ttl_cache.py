from typing import Any, Dict, Optional, Callable, Iterator
from dataclasses import dataclass
import asyncio
import time

from ..types import CacheEntry
from ..utils.logger import app_logger


@dataclass
class CacheStats:
    """Snapshot of cache counters."""
    size: int
    hits: int
    misses: int
    hit_rate: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
        }


class TTLCache:
    """Keyed in-memory cache whose entries expire after a per-entry TTL.

    Expired entries are removed two ways: lazily when a read finds them
    expired, and in bulk by sweep(), which is meant to run on a timer.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.logger = app_logger.bind(component="ttl_cache")
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Get a live value, counting a hit or a miss."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.misses += 1
            return default

        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: float):
        """Store a value, replacing any previous entry for the key."""
        self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl=ttl)

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Delete keys containing `pattern`, or every key when no pattern is given."""
        if pattern is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if pattern in key]
            for key in keys:
                del self._entries[key]
            removed = len(keys)

        if removed:
            self.logger.debug(f"Invalidated {removed} cache entries (pattern={pattern!r})")
        return removed

    def sweep(self) -> int:
        """Delete every expired entry."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            self.logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._entries), hits=self.hits, misses=self.misses, hit_rate=self.hit_rate)

    def reset_stats(self):
        self.hits = 0
        self.misses = 0

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class CacheSweeper:
    """Runs a maintenance callback on a fixed interval in the event loop."""

    def __init__(self, callback: Callable[[], Any], interval: float):
        self.logger = app_logger.bind(component="cache_sweeper")
        self.callback = callback
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the sweep loop; must be called from a running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self.logger.debug(f"Cache sweeper started (interval={self.interval}s)")

    async def stop(self):
        """Stop the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.debug("Cache sweeper stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.callback()
            except Exception as e:
                self.logger.error(f"Error during cache maintenance: {e}")
