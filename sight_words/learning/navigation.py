from __future__ import annotations

import asyncio
import random
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


def next_index(
    current: int,
    length: int,
    *,
    random_order: bool = False,
    rng: random.Random | None = None,
) -> int:
    """Index of the word to show after ``current``.

    Random order never repeats the current word when there is more than one
    word to choose from. An empty list leaves the index untouched.
    """
    if length <= 0:
        return current
    if random_order:
        if length == 1:
            return 0
        rng = rng or random
        candidate = current
        while candidate == current:
            candidate = rng.randrange(length)
        return candidate
    return (current + 1) % length
