from __future__ import annotations

from collections import defaultdict
from contextlib import ExitStack, contextmanager
from threading import Lock, RLock
from typing import Iterator


class KeyedLocks:
    """One re-entrant lock per key, created on first use."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, RLock] = defaultdict(RLock)

    def lock_for(self, key: str) -> RLock:
        with self._guard:
            return self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.lock_for(key)
        with lock:
            yield

    @contextmanager
    def hold_many(self, *keys: str) -> Iterator[None]:
        """Hold several keys at once, always acquired in sorted order."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self.lock_for(key))
            yield
