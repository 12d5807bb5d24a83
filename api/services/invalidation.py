"""
Derived-view invalidation.

Writes publish the cache keys they make stale; subscribers (the view cache)
drop everything under those keys. Keys are tuples and a published key matches
every key that starts with it, so ("subject-progress",) clears the cached
completions of every student.

Key families:
    ("subject-progress", student_id)       completed-chapter map
    ("courses-progress", student_id)
    ("course-chapters", subject_id)
    ("exams", ...)
    ("exam-results", student_id)
"""

from __future__ import annotations

import time
from typing import Any, Callable, Hashable, Optional

from api.utils.logger import configure_logging

logger = configure_logging()

CacheKey = tuple[Hashable, ...]
Listener = Callable[[CacheKey], None]


def completions_key(student_id: str) -> CacheKey:
    return ("subject-progress", student_id)


def key_matches(prefix: CacheKey, key: CacheKey) -> bool:
    return key[: len(prefix)] == prefix


class InvalidationBus:
    """In-process pub/sub of invalidated key prefixes."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, *prefixes: CacheKey) -> None:
        for prefix in prefixes:
            logger.debug("invalidate key=%s", prefix)
            for listener in list(self._listeners):
                listener(prefix)


class ViewCache:
    """TTL cache of derived read models, cleared by the invalidation bus."""

    def __init__(self, ttl_seconds: float, bus: Optional[InvalidationBus] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, Any]] = {}
        if bus is not None:
            bus.subscribe(self.invalidate)

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at > self.ttl_seconds

    def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            del self._entries[key]
            return None
        return value

    def set(self, key: CacheKey, value: Any) -> None:
        now = self._clock()
        self.purge_expired(now)
        self._entries[key] = (now, value)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Drop every expired entry; returns how many were dropped."""
        now = self._clock() if now is None else now
        stale = [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def invalidate(self, prefix: CacheKey) -> None:
        for key in [k for k in self._entries if key_matches(prefix, k)]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
