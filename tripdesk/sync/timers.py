"""Timer abstraction for debouncing.

The scheduler never touches the event loop clock directly, so tests can
drive it with a virtual timer.
"""

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None: ...


class Timer(Protocol):
    """Schedules callbacks after a delay."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopTimer:
    """Timer backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)
