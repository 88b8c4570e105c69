# ArgScope — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides `ResultCache`, a time-bounded, in-memory memoization store.

The cache backs the expensive parts of a completion request: capturing a
program's `--help` or manual output, compiling registered grammars, and
enumerating value providers such as user or group names.

Entries are `(key, expiry, value)` triples. Keys are any hashable value,
conventionally a program name or a `(kind, program)` tuple. Expired entries are
evicted lazily on read or by an explicit `flush()`; there is no background timer.

The cache is owned by an `ArgScope` session rather than living at module level,
and its mapping is guarded by a lock so one instance can be shared between threads.

Example:
    cache = ResultCache(max_duration=600)
    cache.put("ls", options, 60)
    cache.get("ls")          # -> options, until 60 seconds pass
    cache.cached("git", lambda: extract("git"), 120)
    cache.flush(force=True)  # drop everything
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Hashable, TypeVar

from argscope.logger import logger

T = TypeVar("T")

MISSING: Any = object()


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading after which it is stale."""

    key: Hashable
    expiry: float
    value: Any

    def is_expired(self, now: float) -> bool:
        return now >= self.expiry


class ResultCache:
    """
    Time-bounded memoization keyed by arbitrary hashable values.

    Args:
        max_duration (float): Upper bound applied to every requested duration.
        default_duration (float): Duration used when `put()`/`cached()` get none.
        clock (Callable[[], float]): Time source, `time.monotonic` by default.
    """

    def __init__(
        self,
        max_duration: float = 86400.0,
        default_duration: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_duration = max_duration
        self.default_duration = default_duration
        self.clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for `key`, evicting it if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.is_expired(self.clock()):
                del self._entries[key]
                logger.debug("Cache entry expired: %r", key)
                return default
            return entry.value

    def put(self, key: Hashable, value: T, duration: float | None = None) -> T:
        """
        Store `value` under `key` for `duration` seconds and return it.

        The duration is clamped to `max_duration`. A duration of zero or less
        skips caching; the value is still returned.
        """
        if duration is None:
            duration = self.default_duration
        duration = min(duration, self.max_duration)
        if duration <= 0:
            return value
        with self._lock:
            self._entries[key] = CacheEntry(key, self.clock() + duration, value)
        return value

    def cached(
        self,
        key: Hashable,
        compute: Callable[[], T],
        duration: float | None = None,
    ) -> T:
        """Return the cached value for `key` or compute, store and return it."""
        value = self.get(key, MISSING)
        if value is not MISSING:
            return value
        logger.debug("Cache miss: %r", key)
        return self.put(key, compute(), duration)

    def discard(self, key: Hashable) -> bool:
        """Remove `key` whether or not it has expired. Returns whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self, force: bool = False) -> int:
        """
        Remove expired entries, or every entry when `force` is set.

        Returns:
            int: The number of entries removed.
        """
        with self._lock:
            if force:
                removed = len(self._entries)
                self._entries.clear()
            else:
                now = self.clock()
                stale = [
                    key
                    for key, entry in self._entries.items()
                    if entry.is_expired(now)
                ]
                for key in stale:
                    del self._entries[key]
                removed = len(stale)
        logger.debug("Cache flush removed %d entries (force=%s)", removed, force)
        return removed

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, MISSING) is not MISSING

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __str__(self) -> str:
        return (
            f"ResultCache(entries={len(self)}, default_duration={self.default_duration}, "
            f"max_duration={self.max_duration})"
        )

    def __repr__(self) -> str:
        return str(self)
