"""In-memory TTL cache shared by request handlers.

Entries expire lazily: an expired entry reads as absent but stays in the
store until it is overwritten, deleted or cleared. Readers share the store,
writers get it exclusively.
"""

import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator


class CacheError(Exception):
    """A cache tier could not answer (connectivity, bad payload)."""


class ReadWriteLock:
    """Many concurrent readers or a single writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TTLCache:
    """Thread-safe in-memory cache with per-key TTL.

    Usage:
        cache = TTLCache()

        found, rows = cache.lookup("league_table")
        if not found:
            rows = compute_table()
            cache.set("league_table", rows, ttl=30)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = ReadWriteLock()
        self._clock = clock

    def lookup(self, key: str) -> tuple[bool, Any]:
        """Return ``(True, value)`` for a live entry, ``(False, None)`` otherwise."""
        with self._lock.read_locked():
            entry = self._store.get(key)
        if entry is None:
            return False, None
        expires_at, value = entry
        if self._clock() > expires_at:
            return False, None
        return True, value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a cached value if it exists and hasn't expired."""
        found, value = self.lookup(key)
        return value if found else default

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value that expires ``ttl`` seconds from now."""
        expires_at = self._clock() + ttl
        with self._lock.write_locked():
            self._store[key] = (expires_at, value)

    def delete(self, key: str) -> bool:
        """Drop an entry. Returns whether one was present."""
        with self._lock.write_locked():
            return self._store.pop(key, None) is not None

    def clear(self) -> int:
        """Clear all entries. Returns the number of entries cleared."""
        with self._lock.write_locked():
            count = len(self._store)
            self._store.clear()
            return count

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._store)
