"""Bounded, thread-safe LRU cache for rendered diagrams.

Keys are the raw encoded path segments exactly as they arrived in the
request; values are the rendered SVG bytes.  Eviction is purely count based:
once ``capacity`` entries are stored, inserting a new key drops the entry
whose last ``get`` or ``put`` is oldest.

A single :class:`threading.Lock` guards the ordering structure, which is
enough for the request volumes this service sees.  There is no single-flight
coordination: two concurrent misses for the same key both render, and the
second ``put`` simply overwrites the first.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from threading import Lock

from mermaid_service.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256


class DiagramCache:
    """Fixed-capacity key → bytes store with least-recently-used eviction.

    Args:
        capacity: Maximum number of entries.  Must be positive.

    Raises:
        ConfigError: If ``capacity`` is zero or negative.

    Example:
        >>> cache = DiagramCache(2)
        >>> cache.put("a", b"<svg/>")
        >>> cache.get("a")
        b'<svg/>'
        >>> cache.get("missing") is None
        True
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ConfigError(f"cache capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._lock = Lock()
        self._entries: OrderedDict[str, bytes] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> bytes | None:
        """Return the bytes stored under ``key``, or ``None``.

        A hit marks the entry as most recently used.
        """
        with self._lock:
            if key not in self._entries:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return self._entries[key]

    def put(self, key: str, value: bytes) -> None:
        """Insert or overwrite ``key``, evicting the LRU entry when full."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            self._entries[key] = value
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry %s", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        """Return a snapshot of size and hit/miss/eviction counters."""
        with self._lock:
            return {
                "capacity": self._capacity,
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Membership checks do not count as a use.
        with self._lock:
            return key in self._entries
