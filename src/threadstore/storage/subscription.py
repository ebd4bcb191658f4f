"""
Subscription handles for change listeners.

A Subscription owns the asyncio task that pushes events to a callback.
Delivery runs until the handle is cancelled or the underlying stream fails;
there is no replay of events missed while not subscribed.
"""

import asyncio
import inspect
from typing import Any, Callable

from threadstore.core.config import get_logger
from threadstore.core.types import ListenEvent

logger = get_logger("storage.subscription")


EventCallback = Callable[[ListenEvent], Any]
"""Plain function or coroutine function taking one event."""


async def dispatch(callback: EventCallback, event: ListenEvent) -> None:
    """Invoke a plain or coroutine callback for one event."""
    result = callback(event)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """
    Cancellable handle over a delivery task.

    Usable as an async context manager; leaving the block cancels delivery.
    """

    def __init__(
        self,
        task: asyncio.Task,
        on_close: Callable[[], None] | None = None,
    ):
        self._task = task
        self._on_close = on_close
        self._error: BaseException | None = None
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            self._error = task.exception()
            logger.warning(f"Subscription delivery stopped: {self._error!r}")
        self._release()

    def _release(self) -> None:
        if self._on_close is not None:
            on_close, self._on_close = self._on_close, None
            on_close()

    @property
    def closed(self) -> bool:
        return self._task.done()

    @property
    def error(self) -> BaseException | None:
        """Error that terminated delivery, if any."""
        return self._error

    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if not self._task.done():
            self._task.cancel()
            logger.debug("Subscription cancelled")
        self._release()

    async def wait(self) -> None:
        """
        Wait until delivery stops, re-raising any delivery error.

        Cancelling the waiter (or timing it out) leaves delivery running;
        only ``cancel()`` stops it.
        """
        await asyncio.wait({self._task})
        if not self._task.cancelled() and self._task.exception() is not None:
            raise self._task.exception()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel()
        # Delivery errors stay on ``error``; leaving the block does not raise them
        await asyncio.wait({self._task})
