"""One-shot timers on the running asyncio loop."""
from __future__ import annotations
import asyncio
from typing import Callable


def start_timer(milliseconds: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
    """Schedule ``callback`` once after ``milliseconds``; negative delays count as 0.

    Must be called from a coroutine or callback running on the event loop. A zero
    delay still defers the callback to a later loop iteration.
    """
    loop = asyncio.get_running_loop()
    delay = max(0, milliseconds) / 1000
    return loop.call_later(delay, callback)


def stop_timer(timer: asyncio.TimerHandle) -> None:
    # cancel() is a no-op on handles that already fired or were cancelled
    timer.cancel()
