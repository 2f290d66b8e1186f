"""
Clock sources for the orchestrator.

The orchestrator stamps creation and bid times from its own clock, never
from anything the caller supplies.
"""

import time
from dataclasses import dataclass
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


@dataclass
class ManualClock:
    """Settable clock for simulations and tests."""
    now: int = 0

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now

    def set(self, timestamp: int) -> None:
        self.now = timestamp


__all__ = ["Clock", "system_clock", "ManualClock"]
