"""
Thread-safe primitives shared by concurrent indexing workers.
"""

import threading


class AtomicCounter:
    """Monotonically increasing integer counter."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment_and_get(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class WarnLatch:
    """
    One-shot flag guarding a warning.

    Only the first caller of trip() gets True; every later call is a no-op.
    """

    def __init__(self) -> None:
        self._tripped = False
        self._lock = threading.Lock()

    def trip(self) -> bool:
        with self._lock:
            if self._tripped:
                return False
            self._tripped = True
            return True

    @property
    def tripped(self) -> bool:
        return self._tripped
