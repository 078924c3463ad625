"""Request-scoped deadline and cancellation.

A :class:`Deadline` bounds the whole of one ``confirm_and_sync`` call. The
verification poll loop checks it between attempts and sleeps on its cancel
event, so :meth:`Deadline.cancel` (for example on server shutdown) wakes a
sleeping loop immediately. The patch race clamps its timer to the time left,
and no patch is submitted once the deadline has passed.

In-flight ledger calls are not interrupted; a deadline only stops the
engine from *starting* more work or *waiting* longer.
"""

from __future__ import annotations

import math
import threading
import time


class Deadline:
    """A monotonic-clock deadline with an attached cancel flag."""

    def __init__(self, expires_at: float = math.inf, *, clock=time.monotonic) -> None:
        self._expires_at = expires_at
        self._clock = clock
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: float | None, *, clock=time.monotonic) -> Deadline:
        """Build a deadline ``seconds`` from now. ``None`` or ``<= 0`` means unbounded."""
        if seconds is None or seconds <= 0:
            return cls(math.inf, clock=clock)
        return cls(clock() + seconds, clock=clock)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float:
        """Seconds left, ``0.0`` once expired or cancelled, ``inf`` if unbounded."""
        if self.cancelled:
            return 0.0
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def clamp(self, seconds: float) -> float:
        """Return ``seconds`` shortened to the time left."""
        return min(seconds, self.remaining())

    def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds`` (clamped). Returns ``False`` if cancelled meanwhile."""
        wait_for = self.clamp(seconds)
        if wait_for > 0:
            self._cancelled.wait(wait_for)
        return not self.cancelled

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}, cancelled={self.cancelled})"
