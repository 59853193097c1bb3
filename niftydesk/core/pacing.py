"""Request pacing for rate-limited backends."""

import threading
import time
from typing import Callable, Optional


class RateLimiter:
    """Spaces successive calls at least ``min_interval`` seconds apart.

    ``wait()`` blocks only as long as needed since the previous call started,
    so a slow backend call does not add an extra delay on top. Safe to share
    between threads: callers are admitted one at a time.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next call is allowed. Returns the time slept."""
        with self._lock:
            slept = 0.0
            if self._last_call is not None:
                remaining = self.min_interval - (self._clock() - self._last_call)
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
            self._last_call = self._clock()
            return slept

    def reset(self) -> None:
        with self._lock:
            self._last_call = None
