"""
Progress reporting for the fingerprinting phase.

Workers call ``tick()``; values are queued for a separate consumer so a slow
renderer never blocks a worker.
"""

import threading
from queue import Queue
from typing import Callable, Iterator, Optional

from tqdm import tqdm


class ProgressReporter:
    """Thread-safe running fraction of processed groups (0.0 to 1.0)."""

    def __init__(self, total: int):
        self.total = total
        self._done = 0
        self._lock = threading.Lock()
        self._queue: "Queue[Optional[float]]" = Queue()
        self._closed = False

    @property
    def value(self) -> float:
        with self._lock:
            return self._fraction()

    @property
    def done(self) -> int:
        with self._lock:
            return self._done

    def tick(self) -> float:
        """Record one finished group and publish the new value."""
        with self._lock:
            self._done += 1
            value = self._fraction()
            self._queue.put(value)
        return value

    def close(self) -> None:
        """Mark the end of the stream; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)

    def stream(self) -> Iterator[float]:
        """Yield published values until ``close()``. Single consumer."""
        while True:
            value = self._queue.get()
            if value is None:
                return
            yield value

    def follow(self, callback: Callable[[float], None]) -> threading.Thread:
        """Feed every value to ``callback`` from a daemon thread."""
        def _consume():
            for value in self.stream():
                callback(value)

        th = threading.Thread(target=_consume, name="vdupe-progress", daemon=True)
        th.start()
        return th

    def _fraction(self) -> float:
        if self.total <= 0:
            return 1.0
        return min(1.0, self._done / self.total)


class TqdmProgress:
    """Callback that mirrors reporter values onto a percentage tqdm bar."""

    def __init__(self, desc: str = "Fingerprinting", disable: bool = False):
        self.bar = tqdm(total=100, desc=desc, unit="%", disable=disable)

    def __call__(self, value: float) -> None:
        target = int(round(value * 100))
        if target > self.bar.n:
            self.bar.update(target - self.bar.n)

    def close(self) -> None:
        self.bar.close()
