"""Async single-flight helper.

Used to lazily create a shared value exactly once: concurrent callers that
arrive while the creator is still working await the same Future.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")


def consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'Future exception was never retrieved' for coordination futures."""
    try:
        _ = fut.exception()
    except asyncio.CancelledError:
        return


def _current_task_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


class SingleFlight(Generic[T]):
    """Memoize the result of one async initialization.

    - If a value is cached, returns it immediately.
    - If creation is in flight, awaits the existing Future.
    - Otherwise, runs *work* as the single creator.

    Failures reach the creator and every waiter but are not cached, so the
    next call starts a fresh attempt. Cancellation belongs to the cancelled
    task only: a cancelled creator hands creation to the next waiter, and a
    cancelled waiter leaves the shared Future untouched.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._value: T | None = None
        self._inflight: asyncio.Future[T] | None = None

    @property
    def value(self) -> T | None:
        return self._value

    async def get(self, work: Callable[[], Awaitable[T]]) -> T:
        while True:
            if self._value is not None:
                return self._value

            async with self._lock:
                if self._value is not None:
                    return self._value

                fut = self._inflight
                if fut is None or fut.done():
                    fut = asyncio.get_running_loop().create_future()
                    fut.add_done_callback(consume_future_exception)
                    self._inflight = fut
                    creator = True
                else:
                    creator = False

            if creator:
                return await self._create(fut, work)

            try:
                return await asyncio.shield(fut)
            except asyncio.CancelledError:
                if fut.cancelled() and not _current_task_cancelling():
                    # The creator was cancelled, not us: try again.
                    continue
                raise

    async def _create(self, fut: asyncio.Future[T], work: Callable[[], Awaitable[T]]) -> T:
        try:
            value = await work()
        except asyncio.CancelledError:
            fut.cancel()
            raise
        except Exception as e:
            fut.set_exception(e)
            raise
        else:
            self._value = value
            fut.set_result(value)
            return value
        finally:
            async with self._lock:
                if self._inflight is fut:
                    self._inflight = None
