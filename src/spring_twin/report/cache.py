"""In-memory LRU cache for rendered reports."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Mapping, Optional, Tuple

from loguru import logger

CacheKey = Tuple[str, int, str, Tuple[Tuple[str, Any], ...]]


def make_key(project_id: str, version: int, report: str, params: Mapping[str, Any]) -> CacheKey:
    return (project_id, version, report, tuple(sorted(params.items())))


class ReportCache:
    """Reports are pure functions of (project, version, report, params).

    A commit bumps the version, so stale entries are never hit again and age
    out of the LRU order.
    """

    def __init__(self, max_entries: int = 256) -> None:
        self._max_entries = max(0, max_entries)
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: CacheKey, value: Any) -> None:
        if not self._max_entries:
            return
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate_project(self, project_id: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key[0] == project_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Dropped {} cached report(s) for project {}", len(stale), project_id)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}


__all__ = ["ReportCache", "make_key"]
