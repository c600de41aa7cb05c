"""
Timer sources for the simulation engine.

AsyncioScheduler runs callbacks on the running asyncio event loop.
VirtualScheduler is a manual clock: time only moves when ``advance`` is
called, which makes every timer chain deterministic in tests and lets the
command-line runner fast-forward a simulation.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

Callback = Callable[[], None]


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self):
        """Cancel the timer. Cancelling twice, or after it fired, is harmless."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        """
        Schedule a one-shot callback.
        :param delay_ms: Delay in milliseconds.
        :param callback: Called with no arguments once the delay has elapsed.
        :return: A handle that can cancel the callback.
        """
        pass

    @abstractmethod
    def now(self) -> float:
        """Current time in milliseconds."""
        pass


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self):
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        return _AsyncioTimerHandle(self.loop.call_later(delay_ms / 1000.0, callback))

    def now(self) -> float:
        return self.loop.time() * 1000.0


class _VirtualTimerHandle(TimerHandle):
    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class VirtualScheduler(Scheduler):
    """A simulated millisecond clock that never sleeps."""

    def __init__(self):
        self._now = 0.0
        self._sequence = itertools.count()
        self._queue: List[Tuple[float, int, _VirtualTimerHandle, Callback]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callback) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError(f"Delay must not be negative, got {delay_ms}")
        handle = _VirtualTimerHandle()
        heapq.heappush(self._queue, (self._now + delay_ms, next(self._sequence), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, delta_ms: float) -> int:
        """
        Moves the clock forward, firing every due callback in time order.
        Callbacks scheduled while advancing fire too if they fall due in the window.
        :param delta_ms: How far to move the clock, in milliseconds.
        :return: The number of callbacks fired.
        """
        if delta_ms < 0:
            raise ValueError(f"Cannot move clock backwards by {delta_ms}")
        target = self._now + delta_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target + 1e-9:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._now = due
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self._now = target
        return fired
