"""Non-blocking handle on one direction of one FIFO.

Transfers follow a readiness loop: wait until the event loop reports the
descriptor readable (or writable), attempt a non-blocking ``os.read`` /
``os.write``, and go back to waiting on ``BlockingIOError``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from enum import StrEnum
from typing import TYPE_CHECKING, BinaryIO

from sfifo.errors import EndOfStreamError, InvalidOperationError

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

logger = logging.getLogger(__name__)


class Direction(StrEnum):
    SEND = "send"
    RECEIVE = "receive"


class PipeEndpoint:
    """Exclusively owned, non-blocking file descriptor for a FIFO end.

    Closing is idempotent. Use as a context manager to guarantee the
    descriptor is released on every path, including cancellation.
    """

    def __init__(self, fd: int, path: Path, direction: Direction) -> None:
        self._fd: int | None = fd
        self._path = path
        self._direction = direction

    def __repr__(self) -> str:
        state = "closed" if self._fd is None else f"fd={self._fd}"
        return f"<PipeEndpoint {self._direction} {self._path} {state}>"

    def __enter__(self) -> PipeEndpoint:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def closed(self) -> bool:
        return self._fd is None

    def fileno(self) -> int:
        if self._fd is None:
            msg = f"Endpoint for {self._path} is closed"
            raise ValueError(msg)
        return self._fd

    def close(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        os.close(fd)
        logger.debug("Closed %s end of %s", self._direction, self._path)

    def detach_file(self, *, blocking: bool = True) -> BinaryIO:
        """Hand the descriptor over to an unbuffered binary file object.

        The endpoint is closed afterwards; the file owns the descriptor.
        """
        fd = self.fileno()
        self._fd = None
        os.set_blocking(fd, blocking)
        mode = "rb" if self._direction is Direction.RECEIVE else "wb"
        return os.fdopen(fd, mode, buffering=0)

    def _require(self, direction: Direction, operation: str) -> int:
        if self._direction is not direction:
            msg = f"Cannot {operation} on the {self._direction} end of {self._path}"
            raise InvalidOperationError(msg)
        return self.fileno()

    async def _wait_ready(self, fd: int, *, write: bool) -> None:
        loop = asyncio.get_running_loop()
        ready = loop.create_future()

        def _on_ready() -> None:
            if not ready.done():
                ready.set_result(None)

        if write:
            loop.add_writer(fd, _on_ready)
        else:
            loop.add_reader(fd, _on_ready)
        try:
            await ready
        finally:
            if write:
                loop.remove_writer(fd)
            else:
                loop.remove_reader(fd)

    # -- receive side -----------------------------------------------------

    async def readable(self) -> None:
        """Wait until a read would not block (data or end of stream)."""
        fd = self._require(Direction.RECEIVE, "wait for readable")
        await self._wait_ready(fd, write=False)

    def try_read(self, size: int) -> bytes:
        """Read up to *size* bytes without waiting.

        Raises:
            BlockingIOError: If no data is available yet.
        """
        fd = self._require(Direction.RECEIVE, "read")
        return os.read(fd, size)

    async def read(self, size: int) -> bytes:
        """Read up to *size* bytes; ``b""`` means the writer closed the pipe."""
        fd = self._require(Direction.RECEIVE, "read")
        while True:
            await self._wait_ready(fd, write=False)
            try:
                return os.read(fd, size)
            except BlockingIOError:
                continue

    async def read_exact(self, size: int) -> bytes:
        """Read exactly *size* bytes, across as many reads as needed.

        Raises:
            EndOfStreamError: If the pipe closes first.
        """
        self._require(Direction.RECEIVE, "read")
        buf = bytearray()
        while len(buf) < size:
            chunk = await self.read(size - len(buf))
            if not chunk:
                raise EndOfStreamError(size, len(buf))
            buf += chunk
        return bytes(buf)

    # -- send side --------------------------------------------------------

    async def writable(self) -> None:
        """Wait until a write would not block."""
        fd = self._require(Direction.SEND, "wait for writable")
        await self._wait_ready(fd, write=True)

    def try_write(self, data: bytes) -> int:
        """Write as much of *data* as fits without waiting.

        Raises:
            BlockingIOError: If the pipe buffer is full.
        """
        fd = self._require(Direction.SEND, "write")
        return os.write(fd, data)

    async def write(self, data: bytes) -> int:
        """Write some of *data*, returning how many bytes the pipe accepted."""
        fd = self._require(Direction.SEND, "write")
        while True:
            await self._wait_ready(fd, write=True)
            try:
                return os.write(fd, data)
            except BlockingIOError:
                continue

    async def write_all(self, data: bytes) -> None:
        self._require(Direction.SEND, "write")
        view = memoryview(data)
        while view:
            written = await self.write(view)
            view = view[written:]


__all__ = ["Direction", "PipeEndpoint"]
