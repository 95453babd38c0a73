"""
Cancellation handle shared by every network-bound stage.

A `Cancellation` combines an optional monotonic deadline with a manual
cancel flag. The clock is injectable so tests never wait on wall time.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

Clock = Callable[[], float]


@dataclass
class Cancellation:
    deadline: Optional[float] = None
    clock: Clock = time.monotonic
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def after(cls, seconds: float, *, clock: Clock = time.monotonic) -> "Cancellation":
        """A cancellation that fires `seconds` from now."""
        return cls(deadline=clock() + float(seconds), clock=clock)

    @classmethod
    def never(cls) -> "Cancellation":
        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and self.clock() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (None when unbounded, 0.0 once fired)."""
        if self._event.is_set():
            return 0.0
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def bounded(self, timeout: Optional[float]) -> Optional[float]:
        """Clamp a per-call timeout so it never outlives the deadline."""
        left = self.remaining()
        if left is None:
            return timeout
        if timeout is None:
            return left
        return min(float(timeout), left)


__all__ = ["Cancellation", "Clock"]
