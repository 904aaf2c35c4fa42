#!/usr/bin/env python3
"""
Response Cache - Injectable key/value cache with explicit invalidation.

Entries never expire on their own; callers refresh by invalidating. Every
read made through the data collector reports whether it came from the cache
or from Canvas (see FetchResult).
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_FRESH = "fresh"

T = TypeVar("T")


@dataclass
class FetchResult(Generic[T]):
    """Data plus where it came from ("cache" or "fresh")."""
    data: T
    source: str = SOURCE_FRESH

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class Cache:
    """Base cache interface. Values must be JSON-serializable."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any):
        raise NotImplementedError

    def invalidate(self, key: str):
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def timestamp(self, key: str) -> Optional[float]:
        """When the entry was stored (epoch seconds), None if absent."""
        return None


class MemoryCache(Cache):
    """Cache held in a dict for the life of the process."""

    def __init__(self):
        self._entries: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        return entry["data"] if entry else None

    def set(self, key: str, value: Any):
        self._entries[key] = {"data": value, "timestamp": time.time()}

    def invalidate(self, key: str):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def timestamp(self, key: str) -> Optional[float]:
        entry = self._entries.get(key)
        return entry["timestamp"] if entry else None


class JsonFileCache(Cache):
    """
    Cache stored as one JSON file per key in a directory.

    A corrupt or unreadable entry counts as a miss and is removed.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache entry {path.name}: {e}")
            self.invalidate(key)
            return None

    def get(self, key: str) -> Optional[Any]:
        entry = self._read(key)
        return entry.get("data") if entry else None

    def set(self, key: str, value: Any):
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump({"data": value, "timestamp": time.time()}, f, ensure_ascii=False)

    def invalidate(self, key: str):
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def clear(self):
        if not self.directory.exists():
            return
        for path in self.directory.glob("*.json"):
            path.unlink()

    def timestamp(self, key: str) -> Optional[float]:
        entry = self._read(key)
        return entry.get("timestamp") if entry else None


def make_cache(directory: str = "") -> Cache:
    """File cache when a directory is configured, in-memory otherwise."""
    if directory:
        return JsonFileCache(directory)
    return MemoryCache()
