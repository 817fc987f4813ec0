"""Two-tier, time-expiring cache for station-directory responses.

Entries live in an in-memory map for the lifetime of the process and are
written through to a persistent store so they survive restarts. The clock and
the persistent backend are injected, which keeps the cache deterministic under
test.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

from .models import StationQuery

CACHE_TTL_SECONDS = 15 * 60
CACHE_KEY_PREFIX = "ocm_stations_"

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class StorageQuotaError(OSError):
    """Raised by a store when a write would exceed its size limit."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, key: str, value: Dict[str, Any]) -> None:
        ...


class MemoryStore:
    """Dictionary-backed store, handy for tests and single-process runs."""

    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self._items.get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._items[key] = value


class JsonFileStore:
    """Keeps every entry in one JSON document on disk."""

    def __init__(self, path: str | Path, max_bytes: Optional[int] = None) -> None:
        self.path = Path(path)
        self.max_bytes = max_bytes
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        try:
            raw_data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return raw_data if isinstance(raw_data, dict) else {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._load().get(key)
        return item if isinstance(item, dict) else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            items = self._load()
            items[key] = value
            text = json.dumps(items, ensure_ascii=False)
            if self.max_bytes is not None and len(text.encode("utf-8")) > self.max_bytes:
                raise StorageQuotaError(f"cache file would exceed {self.max_bytes} bytes")
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(text, encoding="utf-8")


def build_cache_key(query: StationQuery) -> str:
    """Deterministic key; equivalent queries map to the same string."""
    params = {
        "lat": query.latitude,
        "lon": query.longitude,
        "dist": query.distance,
        "max": query.max_results,
        "minPkw": query.min_power_kw,
    }
    normalized = {name: float(value) for name, value in params.items() if value is not None}
    return CACHE_KEY_PREFIX + json.dumps(normalized, sort_keys=True, separators=(",", ":"))


def is_expired(entry: Dict[str, Any], now: float, ttl: float = CACHE_TTL_SECONDS) -> bool:
    try:
        timestamp = float(entry["timestamp"])
    except (KeyError, TypeError, ValueError):
        return True
    return now - timestamp > ttl


class StationCache:
    """Memory map in front of a persistent ``KeyValueStore``."""

    def __init__(self, store: Optional[KeyValueStore] = None, clock: Clock = time.time, ttl: float = CACHE_TTL_SECONDS) -> None:
        self._memory: Dict[str, Dict[str, Any]] = {}
        self._store = store if store is not None else MemoryStore()
        self._clock = clock
        self._ttl = ttl
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return a payload still within TTL, or ``None`` on a miss."""
        now = self._clock()
        with self._lock:
            entry = self._memory.get(key)
        if entry is not None and not is_expired(entry, now, self._ttl):
            logger.info("Serving from memory cache: %s", key)
            return entry["data"]

        entry = self._read_persistent(key)
        if entry is None or is_expired(entry, now, self._ttl):
            if entry is not None:
                logger.info("Cache stale: %s", key)
            return None

        with self._lock:
            self._memory[key] = entry
        logger.info("Serving from persistent cache: %s", key)
        return entry["data"]

    def get_stale(self, key: str) -> Optional[Any]:
        """Return the stored payload regardless of its age."""
        with self._lock:
            entry = self._memory.get(key)
        if entry is None:
            entry = self._read_persistent(key)
        if entry is None or "data" not in entry:
            return None
        return entry["data"]

    def put(self, key: str, payload: Any) -> None:
        entry = {"timestamp": self._clock(), "data": payload}
        with self._lock:
            self._memory[key] = entry
        try:
            self._store.set(key, entry)
            logger.info("Cached new data: %s", key)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Error writing to persistent cache for %s: %s", key, exc)

    def _read_persistent(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            entry = self._store.get(key)
        except (OSError, ValueError) as exc:
            logger.warning("Error reading from persistent cache for %s: %s", key, exc)
            return None
        if not isinstance(entry, dict) or "data" not in entry:
            return None
        return entry
