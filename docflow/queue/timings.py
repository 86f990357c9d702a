import threading
from collections import deque


class ProcessingTimes:
    """Rolling window of observed job durations in seconds."""

    def __init__(self, window: int = 100) -> None:
        self._lock = threading.Lock()
        self._samples: deque[float] = deque(maxlen=window)

    def record(self, seconds: float) -> None:
        with self._lock:
            self._samples.append(max(0.0, seconds))

    def average(self) -> float | None:
        with self._lock:
            if not self._samples:
                return None
            return sum(self._samples) / len(self._samples)
