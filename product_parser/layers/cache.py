"""
Result Cache for the Product URL Parser.
Time-bounded, size-bounded cache of parse results keyed by canonical URL.
"""
import threading
import time
from typing import Callable, Dict, Optional

from product_parser.models.product import CacheEntry, ParseResult
from product_parser.utils.logger import LayerLogger


class ResultCache:
    """
    In-memory parse result cache.

    - Reads check the TTL lazily; stale entries are never swept.
    - Writes at capacity evict the oldest inserted key (FIFO, not LRU).
    - Entries are immutable once written.
    """

    def __init__(
        self,
        ttl_seconds: float = 900.0,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.logger = LayerLogger("result_cache")

    def get(self, key: str) -> Optional[ParseResult]:
        """Return the cached result for key if it is still fresh."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            age = self._clock() - entry.timestamp

        if age < self.ttl_seconds:
            return entry.result

        self.logger.log_decision(
            decision="cache_miss",
            reason="entry expired",
            url=key,
            age_seconds=round(age, 3),
        )
        return None

    def put(self, key: str, result: ParseResult):
        """Store result under key, evicting the oldest entry when full."""
        with self._lock:
            if key in self._entries:
                # Re-inserting moves the key to the back of the eviction order
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self.logger.log_action("cache_evict", "completed", url=oldest)
            self._entries[key] = CacheEntry(result=result, timestamp=self._clock())

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
