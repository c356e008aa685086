"""
Single-slot debounce schedulers.

A scheduler holds at most one pending callback. Scheduling again cancels
whatever was pending, so only the last request inside a window fires.

    AsyncioScheduler  - real timers on the running event loop
    VirtualScheduler  - manual clock, advanced explicitly (tests, batch jobs)
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
import structlog

logger = structlog.get_logger(__name__)

Callback = Callable[[], Any]


class Scheduler(ABC):
    """Cancel-and-reschedule timer with a single slot."""

    @abstractmethod
    def schedule(self, delay_ms: int, callback: Callback) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...

    @property
    @abstractmethod
    def pending(self) -> bool:
        ...


class AsyncioScheduler(Scheduler):
    """
    Debounce on the running asyncio loop.

    Coroutine callbacks are wrapped in a task; the task is kept until it
    finishes so it is not garbage collected mid-flight.
    """

    def __init__(self):
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    def schedule(self, delay_ms: int, callback: Callback) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay_ms / 1000, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _fire(self, callback: Callback) -> None:
        self._handle = None
        result = callback()
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "scheduled_callback_failed",
                error=str(error),
                error_type=type(error).__name__
            )


class VirtualScheduler(Scheduler):
    """
    Scheduler driven by a manual clock.

    Nothing fires until `advance()` moves the clock past the due time.
    Coroutine callbacks are awaited by `advance()`.
    """

    def __init__(self):
        self.now_ms = 0
        self._due_ms: Optional[int] = None
        self._callback: Optional[Callback] = None
        self.fired = 0

    def schedule(self, delay_ms: int, callback: Callback) -> None:
        self._due_ms = self.now_ms + delay_ms
        self._callback = callback

    def cancel(self) -> None:
        self._due_ms = None
        self._callback = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    async def advance(self, ms: int) -> None:
        """Move the clock forward and run the callback if it came due."""
        self.now_ms += ms
        if self._callback is None or self._due_ms is None or self._due_ms > self.now_ms:
            return
        callback = self._callback
        self.cancel()
        self.fired += 1
        result = callback()
        if inspect.isawaitable(result):
            await result
