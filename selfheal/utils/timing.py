"""Wall-clock deadlines for time-boxed healing."""

from __future__ import annotations

import time


class Deadline:
    """A fixed point in monotonic time, checked cooperatively.

    Usage::

        deadline = Deadline(timeout_ms=5000)
        while not deadline.expired:
            await step()
        print(deadline.elapsed_ms)
    """

    def __init__(self, timeout_ms: float) -> None:
        self._start = time.monotonic()
        self._expires_at = self._start + max(timeout_ms, 0) / 1000

    @property
    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(self._expires_at - time.monotonic(), 0.0)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._start) * 1000)
