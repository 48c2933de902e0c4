"""Per-key locking for the file backend.

`KeyedLockTable` hands out exactly one `ReadWriteLock` per key. The table
mutex only guards lookup-or-insert; callers do their I/O under the per-key
lock it returns, so unrelated keys never contend with each other.
"""
from __future__ import annotations
from contextlib import contextmanager
from typing import Dict, Iterator
import threading
import logging

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Shared/exclusive lock built on a condition variable.

    Any number of readers may hold the lock at once; a writer holds it
    alone. Writers are preferred: once a writer is waiting, new readers
    queue behind it.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read called without a read lock held")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            except BaseException:
                self._writers_waiting -= 1
                # readers may be queued only behind this writer
                if not self._writers_waiting and not self._writer:
                    self._cond.notify_all()
                raise
            self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write called without the write lock held")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class KeyedLockTable:
    """Mapping of key -> ReadWriteLock, grown lazily and never shrunk.

    Entries live until `clear()`; memory grows with the number of distinct
    keys seen over the table's lifetime.
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._locks: Dict[str, ReadWriteLock] = {}

    def acquire(self, key: str) -> ReadWriteLock:
        """Return the lock for `key`, creating it on first use.

        Concurrent first callers for the same key always get the same lock
        object.
        """
        with self._mutex:
            lock = self._locks.get(key)
            if lock is None:
                lock = ReadWriteLock()
                self._locks[key] = lock
                logger.debug("Created lock for key %r (%d total)", key, len(self._locks))
        return lock

    def clear(self) -> None:
        with self._mutex:
            self._locks.clear()

    def __len__(self) -> int:
        with self._mutex:
            return len(self._locks)

    def __contains__(self, key: object) -> bool:
        with self._mutex:
            return key in self._locks
