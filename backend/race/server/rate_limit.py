"""Per-connection inbound message throttle."""

import time
from collections.abc import Callable


class MessageThrottle:
    """Budget of `rate` messages per second, saving up to `burst` unused ones.

    The budget starts full. `dropped` counts messages refused since the last
    one that was let through, so the caller can log a flood once when it starts
    and once when it ends.
    """

    def __init__(self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._budget = float(burst)
        self._updated_at = clock()
        self.dropped = 0

    def allow(self) -> bool:
        now = self._clock()
        earned = (now - self._updated_at) * self._rate
        self._updated_at = now
        self._budget = min(float(self._burst), self._budget + earned)

        if self._budget >= 1.0:
            self._budget -= 1.0
            self.dropped = 0
            return True
        self.dropped += 1
        return False
