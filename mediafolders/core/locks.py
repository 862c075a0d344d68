"""Process-local keyed locks.

Serializes operations on the same (owner, folder) pair. Entries are
reference counted and dropped once nobody holds or waits on them.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Tuple


class KeyedLock:
    """A lock per key, created on demand."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    def _acquire_entry(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _release_entry(self, key: Hashable) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        """Hold the locks for all *keys*.

        Keys are taken in sorted order so two callers holding overlapping
        sets cannot deadlock.
        """
        ordered: List[Hashable] = sorted(set(keys), key=repr)
        registered: List[Tuple[Hashable, threading.Lock]] = []
        held: List[threading.Lock] = []
        try:
            for key in ordered:
                lock = self._acquire_entry(key)
                registered.append((key, lock))
                lock.acquire()
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                lock.release()
            for key, _ in reversed(registered):
                self._release_entry(key)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)


folder_locks = KeyedLock()
