"""
In-memory single-slot snapshot cache with TTL.

Holds exactly one value (the latest computed response) and the time it was
stored. Not thread-safe on its own; callers serialize access.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class CacheEntry:
    """A cached value with its storage timestamp."""

    value: Any
    stored_at: float  # clock() reading when stored

    def age(self, now: Optional[float] = None) -> float:
        """Seconds since this entry was stored."""
        if now is None:
            now = time.monotonic()
        return now - self.stored_at


class SnapshotCache:
    """
    Cache for one shared value.

    - get(): returns the entry while its age is below ttl (fresh hit).
    - set(): replaces the value and stamps it with the current time.
    """

    def __init__(
        self, ttl: float, clock: Optional[Callable[[], float]] = None
    ) -> None:
        self._ttl = ttl
        self._entry: Optional[CacheEntry] = None
        self._clock = clock or time.monotonic

    @property
    def last_refresh(self) -> Optional[float]:
        """Clock reading of the last successful set, None before the first."""
        if self._entry is None:
            return None
        return self._entry.stored_at

    def now(self) -> float:
        return self._clock()

    def get(self) -> Optional[CacheEntry]:
        """Return the entry if it exists and is younger than ttl."""
        entry = self._entry
        if entry is None:
            return None
        if entry.age(self._clock()) >= self._ttl:
            return None
        return entry

    def set(self, value: Any) -> CacheEntry:
        """Store a value with the current timestamp."""
        self._entry = CacheEntry(value=value, stored_at=self._clock())
        return self._entry
