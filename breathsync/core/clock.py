"""
Tick clocks.

Every loop in breathsync waits through a Clock, so tests can replace
real time with a virtual one and run a whole session instantly.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
import time


@runtime_checkable
class Clock(Protocol):
    """Millisecond clock with a blocking wait."""
    
    def now_ms(self) -> float:
        ...
    
    def sleep_until(self, deadline_ms: float) -> None:
        ...


class SystemClock:
    """Monotonic wall-clock time."""
    
    def __init__(self) -> None:
        self._origin = time.monotonic()
    
    def now_ms(self) -> float:
        return (time.monotonic() - self._origin) * 1000.0
    
    def sleep_until(self, deadline_ms: float) -> None:
        remaining = deadline_ms - self.now_ms()
        if remaining > 0:
            time.sleep(remaining / 1000.0)


class ManualClock:
    """
    Virtual clock for tests and offline simulation.
    
    Waiting jumps straight to the deadline.
    """
    
    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)
    
    def now_ms(self) -> float:
        return self._now_ms
    
    def sleep_until(self, deadline_ms: float) -> None:
        if deadline_ms > self._now_ms:
            self._now_ms = float(deadline_ms)
    
    def advance(self, delta_ms: float) -> None:
        self._now_ms += max(0.0, delta_ms)
