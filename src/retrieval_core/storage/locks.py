"""
Read/write locking for per-collection state.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """
    Many concurrent readers or one writer.

    New readers wait while a writer is queued.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
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
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class LockRegistry:
    """Hands out one :class:`ReadWriteLock` per key, creating them on demand."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, ReadWriteLock] = {}

    def get(self, key: str) -> ReadWriteLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = ReadWriteLock()
                self._locks[key] = lock
            return lock

    def peek(self, key: str) -> ReadWriteLock | None:
        """Return the lock for *key* if one exists, without creating it."""
        with self._guard:
            return self._locks.get(key)

    def discard(self, key: str, lock: ReadWriteLock) -> None:
        """Forget *key* if it still maps to *lock*."""
        with self._guard:
            if self._locks.get(key) is lock:
                del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
