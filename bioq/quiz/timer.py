from __future__ import annotations

"""Per-question countdown with a fixed deadline and a one-shot expiry guard."""

import threading
import time
from typing import Callable, Optional

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class QuestionTimer:
    """Countdown for one question.

    `poll()` may be called as often as the UI likes; it reports expiry only
    on the first sample at or past the deadline. `arm()` additionally
    schedules a single callback at the deadline, cleared by `cancel()`.
    """

    def __init__(self, budget_ms: int, clock: Clock = monotonic_ms) -> None:
        self.budget_ms = int(budget_ms)
        self.clock = clock
        self.started_at = clock()
        self.deadline = self.started_at + self.budget_ms
        self._fired = False
        self._cancelled = False
        self._handle: Optional[threading.Timer] = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def elapsed_ms(self, now: Optional[int] = None) -> int:
        now = self.clock() if now is None else now
        return max(0, min(self.budget_ms, now - self.started_at))

    def remaining_ms(self, now: Optional[int] = None) -> int:
        now = self.clock() if now is None else now
        return max(0, min(self.budget_ms, self.deadline - now))

    def poll(self, now: Optional[int] = None) -> bool:
        """True exactly once, on the first sample at or after the deadline."""
        if self._fired or self._cancelled:
            return False
        now = self.clock() if now is None else now
        if now >= self.deadline:
            self._fired = True
            return True
        return False

    def arm(self, callback: Callable[[], None]) -> None:
        if self._cancelled or self._fired:
            return
        if self._handle:
            self._handle.cancel()
        delay_s = max(0.0, self.remaining_ms() / 1000.0)
        self._handle = threading.Timer(delay_s, callback)
        self._handle.daemon = True
        self._handle.start()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle:
            self._handle.cancel()
            self._handle = None
