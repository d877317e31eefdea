"""Cancellable scheduled callbacks.

The sync state machine schedules debounce timers and status reverts
through a Scheduler, which doubles as its clock. AsyncioScheduler runs
on the event loop; ManualScheduler advances time explicitly for tests.
"""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class ScheduledCall(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call twice."""
        ...

    def cancelled(self) -> bool:
        """Whether cancel() was called."""
        ...


class Scheduler(Protocol):
    """Timer primitive plus monotonic clock."""

    def time(self) -> float:
        """Current time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        """Run callback after delay seconds."""
        ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def time(self) -> float:
        return self._get_loop().time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(delay, 0.0), callback)


@dataclass(order=True)
class _ManualEntry:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    _cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Deterministic scheduler driven by advance()."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[_ManualEntry] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualEntry:
        entry = _ManualEntry(due=self._now + max(delay, 0.0), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, entry)
        return entry

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to run."""
        return sum(1 for e in self._queue if not e.cancelled())

    def advance(self, seconds: float) -> None:
        """Move time forward, running every callback that becomes due.

        Callbacks scheduled while advancing run too if they fall due
        within the window.
        """
        target = self._now + seconds
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled():
                continue
            self._now = entry.due
            entry.callback()
        self._now = target
