"""Thread-safe counter of wire attempts made by one client."""

import threading


class RequestCounter:
    """Incremented once per wire attempt, retries included."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    @property
    def value(self) -> int:
        with self._lock:
            return self._count
