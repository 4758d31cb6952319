"""
Read-through cache for table metadata, keyed by (workspace_id, table_id).

The cache is an object handed to the services that need it rather than a
module global; the sync service invalidates the entry for a table after every
successful sync of that table.
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

CacheKey = tuple[str, str]


class MetadataCache(Generic[V]):
    """LRU cache with a per-entry TTL. ``enabled=False`` makes it a pass-through."""

    def __init__(self, ttl_seconds: int = 86400, max_entries: int = 1024, enabled: bool = True,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.enabled = enabled
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[float, V]] = OrderedDict()
        self._lock = threading.Lock()
        self.stats = {"hits": 0, "misses": 0, "evictions": 0, "invalidations": 0}

    def get(self, workspace_id: str, table_id: str) -> Optional[V]:
        if not self.enabled:
            return None
        key = (workspace_id, table_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats["misses"] += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.stats["misses"] += 1
                return None
            self._entries.move_to_end(key)
            self.stats["hits"] += 1
            return value

    def set(self, workspace_id: str, table_id: str, value: V) -> None:
        if not self.enabled:
            return
        key = (workspace_id, table_id)
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.stats["evictions"] += 1
                logger.debug("Evicted metadata cache entry %s", evicted)

    def get_or_load(self, workspace_id: str, table_id: str, loader: Callable[[], Optional[V]]) -> Optional[V]:
        """Return the cached value or call ``loader``; ``None`` results are not cached."""
        value = self.get(workspace_id, table_id)
        if value is not None:
            return value
        value = loader()
        if value is not None:
            self.set(workspace_id, table_id, value)
        return value

    def invalidate(self, workspace_id: str, table_id: str) -> None:
        with self._lock:
            if self._entries.pop((workspace_id, table_id), None) is not None:
                self.stats["invalidations"] += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
