"""Open policies for the two ends of a FIFO.

The receive end opens immediately: a non-blocking ``O_RDONLY`` open of a FIFO
succeeds with or without a writer. The send end is different. A non-blocking
``O_WRONLY`` open fails with ``ENXIO`` until some process holds the read end,
so it is retried every 100 ms inside a window bounded either by a timeout or
by a watcher that notices the FIFO being deleted.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
from typing import TYPE_CHECKING

from sfifo.cancellation import CancellationToken, race_with_guard, watch_for_deletion
from sfifo.constants import DEFAULT_OPEN_TIMEOUT, OPEN_RETRY_INTERVAL
from sfifo.endpoint import Direction, PipeEndpoint
from sfifo.errors import FifoDeletedError, FifoTimeoutError, OpenCancelledError
from sfifo.paths import create_fifo

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# No reader yet (ENXIO) or the peer has not created the node yet (ENOENT).
_TRANSIENT_ERRNOS = frozenset({errno.ENXIO, errno.ENOENT})

_RECEIVE_FLAGS = os.O_RDONLY | os.O_NONBLOCK | os.O_CLOEXEC
_SEND_FLAGS = os.O_WRONLY | os.O_NONBLOCK | os.O_CLOEXEC


def open_nonblocking(path: Path, direction: Direction) -> PipeEndpoint:
    """Single non-blocking open attempt; OS errors propagate unchanged."""
    flags = _RECEIVE_FLAGS if direction is Direction.RECEIVE else _SEND_FLAGS
    fd = os.open(path, flags)
    return PipeEndpoint(fd, path, direction)


async def open_receiver(path: Path, *, create: bool = False) -> PipeEndpoint:
    """Open the read end of *path*, creating the node first when asked."""
    if create:
        create_fifo(path)
    endpoint = open_nonblocking(path, Direction.RECEIVE)
    logger.debug("Opened receive end of %s", path)
    return endpoint


async def open_with_retry(
    path: Path,
    cancel: CancellationToken,
    *,
    interval: float = OPEN_RETRY_INTERVAL,
) -> PipeEndpoint:
    """Keep trying to open the write end of *path* until a reader appears.

    Raises:
        OpenCancelledError: Once *cancel* fires.
        OSError: For any failure other than a missing reader or missing node.
    """
    attempts = 0
    while True:
        if cancel.is_cancelled:
            raise OpenCancelledError(path)
        attempts += 1
        try:
            endpoint = open_nonblocking(path, Direction.SEND)
        except OSError as exc:
            if exc.errno not in _TRANSIENT_ERRNOS:
                raise
            if attempts == 1:
                logger.debug("No reader on %s yet (%s); retrying", path, exc.strerror)
            await cancel.sleep(interval)
            continue
        logger.debug("Opened send end of %s after %d attempt(s)", path, attempts)
        return endpoint


async def open_sender(
    path: Path,
    *,
    timeout: float = DEFAULT_OPEN_TIMEOUT,
    notify: bool = False,
    create: bool = False,
) -> PipeEndpoint:
    """Open the write end of *path*, waiting for a reader.

    With *notify* the wait lasts until the FIFO node is deleted instead of
    until *timeout* elapses.

    Raises:
        FifoTimeoutError: If no reader showed up within *timeout*.
        FifoDeletedError: If *notify* is set and the node disappeared.
    """
    if create:
        create_fifo(path)
    cancel = CancellationToken()
    if notify:
        guard = watch_for_deletion(path, cancel)

        def on_guard() -> BaseException:
            return FifoDeletedError(path)

    else:
        guard = asyncio.sleep(timeout)

        def on_guard() -> BaseException:
            return FifoTimeoutError(
                f"No reader opened {path} within {timeout:g}s",
                timeout=timeout,
            )

    return await race_with_guard(
        open_with_retry(path, cancel),
        guard,
        cancel=cancel,
        on_guard=on_guard,
        discard=PipeEndpoint.close,
    )


__all__ = [
    "open_nonblocking",
    "open_receiver",
    "open_sender",
    "open_with_retry",
]
