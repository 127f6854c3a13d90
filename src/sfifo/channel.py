"""Direction-tagged channels returned by an authenticated open.

A channel is either a :class:`SendingChannel` or a :class:`ReceivingChannel`.
Both carry the verified peer record and whether this side acted as server.
Calling an operation of the other direction raises
:class:`~sfifo.errors.InvalidOperationError` straight away.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sfifo.errors import InvalidOperationError

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from sfifo.contracts import HandshakeRecord
    from sfifo.endpoint import PipeEndpoint


class AuthenticatedChannel:
    """Common state of both channel variants.

    Usage::

        async with await NamedPipe(config).open_as_server(token) as channel:
            print(channel.peer_info.process_id)
            data = await channel.read(1024)
    """

    def __init__(
        self,
        endpoint: PipeEndpoint,
        peer_info: HandshakeRecord,
        *,
        is_server: bool,
    ) -> None:
        self._endpoint = endpoint
        self._peer_info = peer_info
        self._is_server = is_server

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self._endpoint.path} "
            f"peer_pid={self._peer_info.process_id} is_server={self._is_server}>"
        )

    def __enter__(self) -> AuthenticatedChannel:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> AuthenticatedChannel:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()

    @property
    def peer_info(self) -> HandshakeRecord:
        """The verified handshake record of the process on the other end."""
        return self._peer_info

    @property
    def is_server(self) -> bool:
        return self._is_server

    @property
    def is_sender(self) -> bool:
        return False

    @property
    def is_receiver(self) -> bool:
        return False

    @property
    def path(self) -> Path:
        return self._endpoint.path

    @property
    def closed(self) -> bool:
        return self._endpoint.closed

    def close(self) -> None:
        self._endpoint.close()

    def _wrong_direction(self, operation: str) -> InvalidOperationError:
        side = "sending" if self.is_sender else "receiving"
        return InvalidOperationError(f"Cannot {operation} on a {side} channel")

    # Read-class operations; only ReceivingChannel implements them.

    async def readable(self) -> None:
        raise self._wrong_direction("wait for readable")

    def try_read(self, size: int) -> bytes:
        raise self._wrong_direction("read")

    async def read(self, size: int) -> bytes:
        raise self._wrong_direction("read")

    async def read_exact(self, size: int) -> bytes:
        raise self._wrong_direction("read")

    # Write-class operations; only SendingChannel implements them.

    async def writable(self) -> None:
        raise self._wrong_direction("wait for writable")

    def try_write(self, data: bytes) -> int:
        raise self._wrong_direction("write")

    async def write(self, data: bytes) -> int:
        raise self._wrong_direction("write")

    async def write_all(self, data: bytes) -> None:
        raise self._wrong_direction("write")

    async def write_text(self, text: str) -> None:
        raise self._wrong_direction("write")

    async def write_line(self, text: str) -> None:
        raise self._wrong_direction("write")


class SendingChannel(AuthenticatedChannel):
    """Write end of an authenticated FIFO (the client side by default)."""

    @property
    def is_sender(self) -> bool:
        return True

    async def writable(self) -> None:
        await self._endpoint.writable()

    def try_write(self, data: bytes) -> int:
        return self._endpoint.try_write(data)

    async def write(self, data: bytes) -> int:
        """Write some of *data*; the return value may be less than ``len(data)``."""
        return await self._endpoint.write(data)

    async def write_all(self, data: bytes) -> None:
        await self._endpoint.write_all(data)

    async def write_text(self, text: str) -> None:
        await self._endpoint.write_all(text.encode("utf-8"))

    async def write_line(self, text: str) -> None:
        await self._endpoint.write_all(text.encode("utf-8") + b"\n")


class ReceivingChannel(AuthenticatedChannel):
    """Read end of an authenticated FIFO (the server side by default)."""

    @property
    def is_receiver(self) -> bool:
        return True

    async def readable(self) -> None:
        await self._endpoint.readable()

    def try_read(self, size: int) -> bytes:
        return self._endpoint.try_read(size)

    async def read(self, size: int) -> bytes:
        """Read up to *size* bytes; ``b""`` once the sender has closed."""
        return await self._endpoint.read(size)

    async def read_exact(self, size: int) -> bytes:
        """Read exactly *size* bytes or raise ``EndOfStreamError``."""
        return await self._endpoint.read_exact(size)


__all__ = ["AuthenticatedChannel", "ReceivingChannel", "SendingChannel"]
