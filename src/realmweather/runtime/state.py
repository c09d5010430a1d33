"""Per-region memoization store for the weather engine.

Provides thread-safe storage of generated samples, replay checkpoints and
derived statistics, partitioned by region id and namespace.
"""
from threading import RLock
from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

_MISSING = object()


class RegionCache:
    """Thread-safe cache partitioned by region id, then namespace, then key.

    Population is idempotent: values are pure functions of their keys, so two
    threads racing to fill the same slot store equal values and the last write
    wins. The lock only protects the dict structure.
    """

    def __init__(self, max_entries_per_namespace: Optional[int] = None):
        """Initialize the cache.

        Args:
            max_entries_per_namespace: Optional cap per (region, namespace);
                the oldest entries are evicted first when exceeded
        """
        self._store: Dict[str, Dict[str, Dict[Any, Any]]] = {}
        self._max_entries = max_entries_per_namespace
        self._listeners: List[Callable[[Optional[str]], None]] = []
        self._lock = RLock()

    def get(self, region_id: str, namespace: str, key: Any, default: Any = None) -> Any:
        """Get a cached value.

        Args:
            region_id: The region id
            namespace: Logical partition (e.g. 'sample', 'temperature')
            key: Key within the namespace
            default: Returned when the slot is empty

        Returns:
            The cached value or default
        """
        with self._lock:
            return self._store.get(region_id, {}).get(namespace, {}).get(key, default)

    def put(self, region_id: str, namespace: str, key: Any, value: Any) -> Any:
        """Store a value and return it."""
        with self._lock:
            ns = self._store.setdefault(region_id, {}).setdefault(namespace, {})
            ns[key] = value
            if self._max_entries and len(ns) > self._max_entries:
                # dicts keep insertion order
                for old in list(ns)[: len(ns) - self._max_entries]:
                    del ns[old]
            return value

    def get_or_compute(self, region_id: str, namespace: str, key: Any, compute: Callable[[], Any]) -> Any:
        """Return the cached value, computing and storing it on a miss.

        The computation runs outside the lock so slow evaluations for one
        region never block readers of another.
        """
        value = self.get(region_id, namespace, key, _MISSING)
        if value is _MISSING:
            value = self.put(region_id, namespace, key, compute())
        return value

    def keys(self, region_id: str, namespace: str) -> List[Any]:
        """Snapshot of keys stored in a namespace."""
        with self._lock:
            return list(self._store.get(region_id, {}).get(namespace, {}).keys())

    def clear(self, region_id: Optional[str] = None) -> int:
        """Drop cached entries for one region, or everything.

        Args:
            region_id: Region to drop; None clears all regions

        Returns:
            Number of entries removed
        """
        with self._lock:
            if region_id is None:
                removed = self.entry_count()
                self._store.clear()
            else:
                removed = self.entry_count(region_id)
                self._store.pop(region_id, None)
        if removed:
            logger.debug(f"Cleared {removed} cache entries for {region_id or 'all regions'}")
        self._notify_listeners(region_id)
        return removed

    def entry_count(self, region_id: Optional[str] = None) -> int:
        """Count cached entries for one region or in total."""
        with self._lock:
            regions = [region_id] if region_id is not None else list(self._store)
            return sum(
                len(ns)
                for rid in regions
                for ns in self._store.get(rid, {}).values()
            )

    def region_ids(self) -> List[str]:
        """Get sorted ids of regions with cached entries."""
        with self._lock:
            return sorted(self._store)

    def add_listener(self, callback: Callable[[Optional[str]], None]) -> None:
        """Add a clear listener.

        Args:
            callback: Called with the cleared region id (None for a full clear)
        """
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Optional[str]], None]) -> bool:
        """Remove a clear listener.

        Returns:
            True if removed, False if not found
        """
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)
                return True
            return False

    def _notify_listeners(self, region_id: Optional[str]) -> None:
        """Notify listeners that entries were cleared."""
        for listener in list(self._listeners):
            try:
                listener(region_id)
            except Exception:
                logger.exception("Error in cache clear listener")
