"""Caller-facing entry point binding a :class:`FifoConfig` to open operations."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from sfifo.channel import ReceivingChannel, SendingChannel
from sfifo.config import FifoConfig
from sfifo.endpoint import Direction
from sfifo.errors import FifoError, InvalidOperationError
from sfifo.handshake import perform_client_handshake, perform_server_handshake
from sfifo.opener import open_nonblocking, open_receiver, open_sender
from sfifo.paths import create_fifo

if TYPE_CHECKING:
    from sfifo.endpoint import PipeEndpoint

logger = logging.getLogger(__name__)


class NamedPipe:
    """A FIFO path plus the options used to open it.

    Usage::

        server = NamedPipe(FifoConfig(path="/tmp/jobs", create=True))
        async with await server.open_as_server(token) as channel:
            data = await channel.read(4096)

        client = NamedPipe("/tmp/jobs")
        async with await client.open_as_client(token) as channel:
            await channel.write_line("hello")
    """

    def __init__(self, config: FifoConfig | Path | str) -> None:
        if not isinstance(config, FifoConfig):
            config = FifoConfig(path=Path(config))
        self._config = config

    def __repr__(self) -> str:
        return f"NamedPipe({self._config.path!s})"

    @property
    def config(self) -> FifoConfig:
        return self._config

    @property
    def path(self) -> Path:
        return self._config.path

    async def open_sender(self) -> PipeEndpoint:
        """Open the write end, waiting for a reader under the configured policy."""
        config = self._config
        return await open_sender(
            config.path,
            timeout=config.timeout,
            notify=config.notify,
            create=config.create,
        )

    async def open_receiver(self) -> PipeEndpoint:
        """Open the read end immediately."""
        return await open_receiver(self._config.path, create=self._config.create)

    async def open(self) -> BinaryIO:
        """Legacy single-direction open returning a plain binary file.

        Direction comes from the ``read``/``write`` flags, which may not both
        be set. In blocking mode the read end opens at once and the write end
        waits for a reader; the file is then switched to blocking I/O. In
        non-blocking mode one raw open is attempted and the file stays
        non-blocking.

        Raises:
            InvalidOperationError: If both flags are set, or neither is in
                non-blocking mode.
        """
        config = self._config
        if config.read and config.write:
            msg = "For safety, read and write cannot be requested at the same time"
            raise InvalidOperationError(msg)
        if config.create:
            create_fifo(config.path)

        if config.blocking:
            endpoint = await (self.open_receiver() if config.read else self.open_sender())
            return endpoint.detach_file(blocking=True)

        if not (config.read or config.write):
            msg = "Non-blocking open needs either read or write"
            raise InvalidOperationError(msg)
        direction = Direction.RECEIVE if config.read else Direction.SEND
        return open_nonblocking(config.path, direction).detach_file(blocking=False)

    async def open_as_server(self, token: str) -> ReceivingChannel:
        """Authenticate the connecting client, then open the read end.

        Raises:
            FifoError: Any handshake failure; no channel is produced.
        """
        config = self._config
        try:
            peer = await perform_server_handshake(
                config.path,
                token,
                timeout=config.handshake_timeout,
            )
        except FifoError as exc:
            logger.warning("Server: handshake on %s failed: %s", config.path, exc)
            raise
        logger.info("Handshake completed with client PID %d", peer.process_id)
        endpoint = await self.open_receiver()
        return ReceivingChannel(endpoint, peer, is_server=True)

    async def open_as_client(self, token: str) -> SendingChannel:
        """Authenticate against the waiting server, then open the write end.

        Raises:
            FifoError: Any handshake failure; no channel is produced.
        """
        config = self._config
        try:
            peer = await perform_client_handshake(
                config.path,
                token,
                timeout=config.handshake_timeout,
            )
        except FifoError as exc:
            logger.warning("Client: handshake on %s failed: %s", config.path, exc)
            raise
        logger.info("Handshake completed with server PID %d", peer.process_id)
        endpoint = await self.open_sender()
        return SendingChannel(endpoint, peer, is_server=False)

    async def open_authenticated_receiver(self, token: str) -> ReceivingChannel:
        """Server-side open with the direction flags forced to read."""
        pipe = NamedPipe(self._config.with_options(read=True, write=False))
        return await pipe.open_as_server(token)

    async def open_authenticated_sender(self, token: str) -> SendingChannel:
        """Client-side open with the direction flags forced to write."""
        pipe = NamedPipe(self._config.with_options(read=False, write=True))
        return await pipe.open_as_client(token)


__all__ = ["NamedPipe"]
