"""
Cancellation tokens.

A CancellationToken is the signal a caller hands to the gateway to abort a
submission. Timeouts are layered on the same token via ``cancel_after``,
so engines only ever have to watch one thing.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from polyexec.shared.errors import ExecutionCancelledError

T = TypeVar("T")


class CancellationToken:
    """
    One-shot cancellation signal.

    Example:
        token = CancellationToken()
        token.cancel_after(30)
        result = await gateway.execute_code("python", code, cancellation=token)
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[[str], None]] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self._parent: Optional["CancellationToken"] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "Execution cancelled") -> None:
        """Fire the token. Later calls are ignored."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(reason)

    def cancel_after(self, seconds: float) -> None:
        """Fire the token after ``seconds``; requires a running loop."""
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            seconds, self.cancel, f"Execution timed out after {seconds:g}s"
        )

    def add_callback(self, callback: Callable[[str], None]) -> None:
        if self.cancelled:
            callback(self._reason or "Execution cancelled")
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[str], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @classmethod
    def linked_to(cls, parent: Optional["CancellationToken"]) -> "CancellationToken":
        """Create a child token that fires whenever ``parent`` fires."""
        child = cls()
        if parent is not None:
            child._parent = parent
            parent.add_callback(child.cancel)
        return child

    def dispose(self) -> None:
        """Drop the timer and the link to the parent token."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._parent is not None:
            self._parent.remove_callback(self.cancel)
            self._parent = None

    async def wait(self) -> str:
        await self._event.wait()
        return self._reason or "Execution cancelled"

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ExecutionCancelledError(self._reason or "Execution cancelled")


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
) -> T:
    """
    Await ``awaitable`` unless ``token`` fires first.

    When the token wins, the pending operation is cancelled and awaited
    before ExecutionCancelledError is raised. If the operation finished in
    the same tick, its result wins.

    Raises:
        ExecutionCancelledError: If the token fired before completion
    """
    if token is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if token.cancelled:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise ExecutionCancelledError(token.reason or "Execution cancelled")

    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        waiter.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)
        raise

    if task.done():
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)
        return task.result()

    task.cancel()
    outcome: Any = (await asyncio.gather(task, return_exceptions=True))[0]
    if not task.cancelled() and not isinstance(outcome, BaseException):
        return outcome
    raise ExecutionCancelledError(token.reason or "Execution cancelled")
