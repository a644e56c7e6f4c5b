"""
Elapsed-seconds timer owned by one round.

Counts whole seconds while running, the way a one-second interval tick would:
stopping drops the partial second in progress, and starting again needs a full
second before the next increment. Pausing keeps the value, only reset() goes
back to 0.

stop() is idempotent; once stopped nothing advances until start() is called.
"""

from time import monotonic
from typing import Callable, Optional


class RoundClock:
    def __init__(self, now: Callable[[], float] = monotonic) -> None:
        self._now = now
        self._banked = 0
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> int:
        if self._started_at is None:
            return self._banked
        return self._banked + int(self._now() - self._started_at)

    def start(self) -> None:
        # restart the tick from now, keeping the banked seconds
        self._banked = self.elapsed
        self._started_at = self._now()

    def stop(self) -> None:
        if self._started_at is None:
            return
        self._banked = self.elapsed
        self._started_at = None

    def reset(self) -> None:
        self._banked = 0
        self._started_at = None
