from __future__ import annotations

import logging
import threading
import time
import unicodedata
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .entities import Coordinates, LocationQuery


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now < self.stored_at + self.ttl


class CacheStore:
    """Process-lifetime TTL cache shared by every lookup.

    Expired entries are dropped lazily when they are read.  With
    ``max_entries`` set, the least recently used entry is evicted on insert.
    """

    def __init__(self, time_func: Callable[[], float] = time.monotonic, max_entries: Optional[int] = None) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._time_func = time_func
        self._max_entries = max_entries
        self._storage: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._storage.get(key)
            if entry is None:
                logger.debug("Cache miss for %s", key)
                return None
            if not entry.is_valid(self._time_func()):
                self._storage.pop(key, None)
                logger.debug("Cache entry expired for %s", key)
                return None
            self._storage.move_to_end(key)
            logger.debug("Cache hit for %s", key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._storage[key] = CacheEntry(value=value, stored_at=self._time_func(), ttl=ttl)
            self._storage.move_to_end(key)
            if self._max_entries is not None:
                while len(self._storage) > self._max_entries:
                    evicted, _ = self._storage.popitem(last=False)
                    logger.debug("Evicted %s from cache", evicted)

    def delete(self, key: str) -> None:
        with self._lock:
            self._storage.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._storage)


def location_identity(location: Union[LocationQuery, Coordinates, str]) -> str:
    """Stable identity for a location regardless of call-site formatting."""
    if isinstance(location, LocationQuery):
        if location.coordinates is not None:
            return location_identity(location.coordinates)
        location = location.name or ""
    if isinstance(location, Coordinates):
        latitude = round(location.latitude, 4) + 0.0
        longitude = round(location.longitude, 4) + 0.0
        return f"{latitude:.4f},{longitude:.4f}"
    text = unicodedata.normalize("NFKC", location)
    return " ".join(text.split()).casefold()


def cache_key(kind: str, location: Union[LocationQuery, Coordinates, str], extra: Optional[int] = None) -> str:
    identity = location_identity(location)
    if extra is not None:
        return f"weather:{kind}:{identity}:{extra}"
    return f"weather:{kind}:{identity}"


__all__ = ["CacheEntry", "CacheStore", "cache_key", "location_identity"]
