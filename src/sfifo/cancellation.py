"""Cooperative cancellation, guarded races, and the FIFO deletion watcher.

A bounded wait is a race between the substantive operation and a *guard*
(a deadline timer or the deletion watcher). Whichever finishes first decides
the outcome; the loser is always cancelled and awaited before the race
returns, so no watcher task outlives the open it protected.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

from sfifo.constants import DELETION_POLL_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from pathlib import Path
    from typing import Any

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal shared between an operation and its guards.

    Cancelling is idempotent: only the first ``cancel()`` call reports ``True``
    and the token stays cancelled forever after.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Trigger the token. Returns ``False`` if it was already cancelled."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for *delay* seconds, waking early on cancellation.

        Returns:
            ``True`` if the token was cancelled before the delay elapsed.
        """
        if self.is_cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True


async def watch_for_deletion(
    path: Path,
    cancel: CancellationToken,
    *,
    interval: float = DELETION_POLL_INTERVAL,
) -> None:
    """Poll *path* until it disappears, then cancel *cancel* once and return.

    Also returns as soon as someone else cancels the token. The path itself is
    never touched.
    """
    while not cancel.is_cancelled:
        if not path.exists():
            logger.info("FIFO %s was removed; cancelling pending open", path)
            cancel.cancel()
            return
        await cancel.sleep(interval)


async def _settle(task: asyncio.Future[Any]) -> None:
    """Cancel *task* if still pending and wait until it has really stopped."""
    if not task.done():
        task.cancel()
        await asyncio.wait({task})
    if not task.cancelled():
        # Mark the loser's exception as retrieved.
        task.exception()


async def race_with_guard(
    operation: Coroutine[Any, Any, T],
    guard: Coroutine[Any, Any, None],
    *,
    cancel: CancellationToken,
    on_guard: Callable[[], BaseException],
    discard: Callable[[T], None] | None = None,
) -> T:
    """Run *operation* against *guard* and return the operation's result.

    If the guard finishes first the token is cancelled and ``on_guard()`` is
    raised. An operation that completed in the same scheduling step as the
    guard still wins. Both tasks are torn down before returning; a result the
    caller never receives (for example after outer cancellation) is handed to
    *discard*.

    Args:
        operation: The substantive work, usually a retrying open.
        guard: A timer or watcher that returns when the wait should end.
        cancel: Token observed cooperatively by *operation*.
        on_guard: Factory for the error raised when the guard wins.
        discard: Disposer for an operation result that is not delivered.
    """
    op_task = asyncio.ensure_future(operation)
    guard_task = asyncio.ensure_future(guard)
    delivered = False
    try:
        await asyncio.wait({op_task, guard_task}, return_when=asyncio.FIRST_COMPLETED)
        if op_task.done():
            result = op_task.result()
            delivered = True
            return result
        cancel.cancel()
        guard_error = guard_task.exception()
        if guard_error is not None:
            raise guard_error
        raise on_guard()
    finally:
        await _settle(op_task)
        await _settle(guard_task)
        if (
            not delivered
            and discard is not None
            and op_task.done()
            and not op_task.cancelled()
            and op_task.exception() is None
        ):
            discard(op_task.result())


__all__ = ["CancellationToken", "race_with_guard", "watch_for_deletion"]
