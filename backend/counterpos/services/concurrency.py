# Overview: Concurrency primitives shared by the storage backends and services.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Hashable, Iterable

from ..errors import StorageContention


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The SQL store escalates to the SQLite write lock separately.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work with retry on lock contention.

    Only StorageContention (deadlocks, "database is locked", optimistic version
    conflicts) is retried. The store has already rolled the unit of work back
    when it raises. Any other failure propagates unchanged.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except StorageContention as exc:
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


class KeyedLocks:
    """
    Re-entrant mutual exclusion per key (product id, order id, session id).

    Different keys never contend. Multiple keys are always acquired in sorted
    order so two holders of overlapping key sets cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.RLock] = {}

    def _lock(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def acquire(self, key: Hashable) -> threading.RLock:
        lock = self._lock(key)
        lock.acquire()
        return lock

    @contextmanager
    def hold(self, key: Hashable):
        lock = self.acquire(key)
        try:
            yield
        finally:
            lock.release()

    @contextmanager
    def hold_many(self, keys: Iterable[Hashable]):
        acquired = []
        try:
            for key in sorted(set(keys)):
                acquired.append(self.acquire(key))
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
