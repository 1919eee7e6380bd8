"""Entry id allocation."""

import threading
import time
from typing import Callable, Iterable

# Ids are stored as signed 64-bit integers
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdentityAllocator:
    """
    Time-based id allocator that never repeats.

    Ids are millisecond timestamps, so they look like the ones older
    documents already contain, but each id is at least one greater than
    the previous one. Two calls within the same millisecond therefore get
    different ids. Call observe() with the ids already on disk so a fresh
    process continues from the highest stored id.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    @property
    def last(self) -> int:
        return self._last

    def observe(self, ids: Iterable[int]) -> None:
        """Raise the floor to the highest id already in use."""
        highest = max(ids, default=0)
        with self._lock:
            if highest > self._last:
                self._last = highest

    def next(self) -> int:
        """Allocate a new id."""
        with self._lock:
            candidate = max(self._clock(), self._last + 1)
            if candidate > MAX_ID:
                raise OverflowError("entry ids exhausted the 64-bit range")
            self._last = candidate
            return candidate
