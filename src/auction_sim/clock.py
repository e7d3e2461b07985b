from __future__ import annotations

import math
import time
from typing import Callable


class AuctionClock:
    """Countdown for the lot currently under the hammer.

    Remaining time is always derived from an absolute deadline, never from
    counting ticks, so a late or skipped tick cannot make the clock drift.
    While paused the deadline travels forward with real time: on resume it
    is pushed back by exactly the paused span.
    """

    def __init__(self, duration: int, now: Callable[[], float] = time.monotonic) -> None:
        self.duration = duration
        self._now = now
        self.deadline: float | None = None
        self.paused = False
        self._paused_at: float | None = None

    @property
    def running(self) -> bool:
        return self.deadline is not None

    def restart(self) -> None:
        self.deadline = self._now() + self.duration
        self.paused = False
        self._paused_at = None

    def stop(self) -> None:
        self.deadline = None
        self.paused = False
        self._paused_at = None

    def pause(self) -> None:
        if self.paused:
            return
        self.paused = True
        self._paused_at = self._now()

    def resume(self) -> None:
        if not self.paused:
            return
        if self.deadline is not None and self._paused_at is not None:
            self.deadline += self._now() - self._paused_at
        self.paused = False
        self._paused_at = None

    def toggle(self) -> bool:
        if self.paused:
            self.resume()
        else:
            self.pause()
        return self.paused

    def remaining_exact(self) -> float:
        if self.deadline is None:
            return float(self.duration)
        reference = self._paused_at if self.paused and self._paused_at is not None else self._now()
        return self.deadline - reference

    def remaining(self) -> int:
        return max(0, math.ceil(self.remaining_exact()))

    @property
    def expired(self) -> bool:
        return self.running and not self.paused and self.remaining_exact() <= 0
