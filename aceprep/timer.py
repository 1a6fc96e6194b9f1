"""
Exam countdown and a cooperative once-per-second ticker.

Nothing here runs in the background: the host calls Ticker.pump() (the Streamlit
fragment does so every second) and every whole second elapsed since the last
firing is delivered to the scheduled callback. Cancelling a handle stops delivery
immediately, even part-way through a catch-up burst.
"""
import enum
import logging
import time
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class TickEvent(enum.Enum):
    WARNING = "warning"
    EXPIRED = "expired"


class Countdown:
    """Remaining exam time in whole seconds with a one-time low-time warning."""

    def __init__(self, duration: int, warning_at: int, remaining: Optional[int] = None):
        self.duration = duration
        self.warning_at = warning_at
        self.remaining = duration if remaining is None else max(0, min(remaining, duration))
        # a countdown resumed below the threshold does not warn again
        self.warned = self.remaining <= warning_at

    @property
    def elapsed(self) -> int:
        return self.duration - self.remaining

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    def tick(self) -> List[TickEvent]:
        if self.expired:
            return []
        self.remaining -= 1
        events = []
        if not self.warned and self.remaining <= self.warning_at:
            self.warned = True
            events.append(TickEvent.WARNING)
        if self.remaining <= 0:
            events.append(TickEvent.EXPIRED)
        return events


class TickHandle:
    def __init__(self, callback: Callable[[], None], interval: float, next_due: float):
        self.callback = callback
        self.interval = interval
        self.next_due = next_due
        self.active = True

    def cancel(self):
        self.active = False


class Ticker:
    """Cooperative interval scheduler driven by pump()."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._handles: List[TickHandle] = []

    def schedule(self, callback: Callable[[], None], interval: float = 1.0) -> TickHandle:
        handle = TickHandle(callback, interval, self.clock() + interval)
        self._handles.append(handle)
        return handle

    def pump(self) -> int:
        """Fire every due tick; returns how many callbacks ran."""
        now = self.clock()
        fired = 0
        for handle in list(self._handles):
            while handle.active and handle.next_due <= now:
                handle.next_due += handle.interval
                handle.callback()
                fired += 1
        self._handles = [h for h in self._handles if h.active]
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if h.active)
