"""
Single-slot adapter between the tick-driven host loop and asyncio ledger work.

The host loop never awaits. It hands one coroutine to :class:`AsyncTaskBridge`,
then polls once per tick until the result comes back as a plain value.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Coroutine, Optional, Union

from loguru import logger

Operation = Union[Coroutine[Any, Any, Any], Callable[[], Coroutine[Any, Any, Any]]]


class EventLoopThread:
    """An asyncio event loop running forever on a daemon thread."""

    def __init__(self, name: str = "ledger-io") -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def run(self, coro: Coroutine[Any, Any, Any], timeout: Optional[float] = None) -> Any:
        """Blocking helper for setup and teardown, never for per-tick work."""
        return self.submit(coro).result(timeout)

    async def _cancel_pending(self) -> None:
        tasks = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel outstanding tasks, let them unwind, then stop and close the loop."""
        if self._loop.is_closed():
            return
        if self._thread.is_alive():
            try:
                self.run(self._cancel_pending(), timeout)
            except FutureTimeoutError:
                logger.warning(f"Pending tasks did not unwind within {timeout}s")
            self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"Event loop thread did not stop within {timeout}s")
            return
        self._loop.close()


class TaskStatus(Enum):
    IDLE = "idle"
    PENDING = "pending"
    FINISHED = "finished"


@dataclass(slots=True, frozen=True)
class TaskPoll:
    status: TaskStatus
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def finished(self) -> bool:
        return self.status is TaskStatus.FINISHED

    @property
    def ok(self) -> bool:
        return self.finished and self.error is None


_IDLE = TaskPoll(TaskStatus.IDLE)
_PENDING = TaskPoll(TaskStatus.PENDING)


class AsyncTaskBridge:
    """Holds at most one in-flight operation and reports on it without blocking."""

    def __init__(self, runner: Optional[EventLoopThread] = None) -> None:
        self._owns_runner = runner is None
        self._runner = runner or EventLoopThread()
        self._pending: Optional[Future] = None
        self._label: Optional[str] = None

    @property
    def runner(self) -> EventLoopThread:
        return self._runner

    @property
    def busy(self) -> bool:
        """True from a successful start until its result has been polled."""
        return self._pending is not None

    def start(self, operation: Operation, label: Optional[str] = None) -> bool:
        """Run ``operation`` in the background. Ignored if one is already held.

        ``operation`` is a coroutine or a zero-argument coroutine function.
        Returns False, without running anything, when the slot is taken.
        """
        label = label or getattr(operation, "__qualname__", repr(operation))
        if self._pending is not None:
            logger.warning(
                f"Ignoring start of '{label}': '{self._label}' is still in flight"
            )
            if inspect.iscoroutine(operation):
                operation.close()
            return False

        coro = operation if inspect.iscoroutine(operation) else operation()
        if not inspect.iscoroutine(coro):
            raise TypeError(f"Operation '{label}' did not produce a coroutine")

        self._pending = self._runner.submit(coro)
        self._label = label
        logger.debug(f"Started '{label}'")
        return True

    def poll(self) -> TaskPoll:
        """Report IDLE, PENDING or FINISHED. A FINISHED result is handed out once."""
        if self._pending is None:
            return _IDLE
        if not self._pending.done():
            return _PENDING

        future, label = self._pending, self._label
        self._pending = None
        self._label = None
        try:
            value = future.result()
        except CancelledError as e:
            logger.warning(f"'{label}' was cancelled")
            return TaskPoll(TaskStatus.FINISHED, error=e)
        except Exception as e:
            logger.debug(f"'{label}' finished with error: {e!r}")
            return TaskPoll(TaskStatus.FINISHED, error=e)
        logger.debug(f"'{label}' finished")
        return TaskPoll(TaskStatus.FINISHED, value=value)

    def close(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._owns_runner:
            self._runner.stop()
