"""
Cancellation token shared by every fetch in one scraping run.

A run holds a single :class:`CancelToken`. Each fetch attempt combines it
with its own deadline through :func:`run_with_deadline`, so call sites
never compose signals themselves.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar('T')


class DeadlineExceeded(Exception):
    """The operation did not finish before its deadline."""


class OperationCancelled(Exception):
    """The run's cancellation token was asserted."""


class CancelToken:
    """One-shot cancellation signal for a scraping run."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """
        Sleep for ``delay`` seconds unless the token fires first.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if self.cancelled:
            return False
        if delay <= 0:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False


async def run_with_deadline(
    awaitable: Awaitable[T],
    deadline: Optional[float],
    token: Optional[CancelToken] = None
) -> T:
    """
    Await ``awaitable`` until it finishes, the deadline passes or the token fires.

    The losing operation is cancelled and awaited, so resources it holds
    (open sockets, streamed responses) are released before returning.
    Cancellation takes priority over the deadline.

    Args:
        awaitable: Coroutine or future to run
        deadline: Seconds to allow, None for no limit
        token: Optional cancellation token

    Returns:
        The awaitable's result

    Raises:
        OperationCancelled: If the token fired first (or was already set)
        DeadlineExceeded: If the deadline passed first
    """
    if token is not None and token.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelled()

    task = asyncio.ensure_future(awaitable)
    waiters = {task}
    cancel_waiter = None
    if token is not None:
        cancel_waiter = asyncio.ensure_future(token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=deadline, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _cancel_and_wait(task)
        raise
    finally:
        if cancel_waiter is not None:
            await _cancel_and_wait(cancel_waiter)

    if task in done:
        return task.result()

    await _cancel_and_wait(task)
    if token is not None and token.cancelled:
        raise OperationCancelled()
    raise DeadlineExceeded()


async def _cancel_and_wait(task: asyncio.Future) -> None:
    if task.done():
        if not task.cancelled():
            # Retrieve the exception so asyncio doesn't warn about it
            task.exception()
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        # abandoned attempt, its outcome is already decided
        pass
