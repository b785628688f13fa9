"""Per-key re-entrant locks for the student and posting mutual-exclusion scopes."""
from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterator


class KeyedLocks:
    """Hands out one ``RLock`` per key, created on first use.

    Callers acquire scopes in a fixed order (student before posting) so two
    operations never wait on each other in opposite orders.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def _get(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._get(key))
            yield


def student_key(student_id: str) -> str:
    return f"student:{student_id}"


def posting_key(posting_id: str) -> str:
    return f"posting:{posting_id}"
