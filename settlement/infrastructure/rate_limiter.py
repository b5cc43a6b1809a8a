import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """
    At most ``max_requests`` per ``window_seconds`` for each caller key.

    The window opens on a key's first request. State lives in process memory,
    so every instance of the service enforces its own limit.
    """

    # Expired windows are swept once the table grows past this size
    SWEEP_THRESHOLD = 10_000

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def allow(self, key: str) -> bool:
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now >= window.reset_at:
            if len(self._windows) >= self.SWEEP_THRESHOLD:
                self._sweep(now)
            self._windows[key] = _Window(count=1, reset_at=now + self._window_seconds)
            return True

        if window.count >= self._max_requests:
            return False

        window.count += 1
        return True

    def reset(self) -> None:
        self._windows.clear()

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
