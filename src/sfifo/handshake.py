"""Three-step mutual authentication over a pair of one-way FIFOs.

The client writes a *request* on ``<path>.c2s``, the server answers with a
*response* on ``<path>.s2c``, and the client confirms with an *ack* on
``<path>.c2s`` again. Every step opens its FIFO end, transfers one framed
record, and closes the end before the next step starts; reusing an end across
steps could interleave unrelated reads.

Each side verifies the kind, token, and age of every record it receives. A
side that rejects a request or response opens the pipe its peer is listening
on and closes it without writing, so the peer fails fast with
``HandshakeRejectedError`` instead of waiting for the deadline. The token
never travels to a peer that failed verification.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from sfifo.constants import DEFAULT_OPEN_TIMEOUT, HANDSHAKE_TIMEOUT, REJECTION_NOTICE_TIMEOUT
from sfifo.contracts import HandshakeKind, HandshakeRecord
from sfifo.errors import (
    AuthenticationError,
    EndOfStreamError,
    FifoError,
    HandshakeRejectedError,
    HandshakeTimeoutError,
    ProtocolViolationError,
    StaleRecordError,
)
from sfifo.framing import read_record, write_record
from sfifo.opener import open_receiver, open_sender
from sfifo.paths import client_to_server_path, server_to_client_path

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from pathlib import Path
    from typing import Any

logger = logging.getLogger(__name__)


async def _receive(
    path: Path,
    expected: HandshakeKind,
    token: str,
    *,
    peer_answering: bool,
) -> HandshakeRecord:
    """Open the read end of *path*, read one record, and verify it.

    A hang-up before the first byte only counts as a rejection when
    *peer_answering* is set, i.e. the peer has already received one of our
    records. Otherwise the bare ``EndOfStreamError`` propagates.
    """
    with await open_receiver(path, create=True) as endpoint:
        try:
            record = await read_record(endpoint)
        except EndOfStreamError as exc:
            if peer_answering and exc.received == 0:
                msg = f"Peer closed {path.name} without answering the handshake"
                raise HandshakeRejectedError(msg) from exc
            raise
    if record.kind is not expected:
        raise ProtocolViolationError(expected, record.kind)
    record.verify(token)
    return record


async def _send(path: Path, record: HandshakeRecord, *, timeout: float) -> None:
    with await open_sender(path, timeout=timeout, create=True) as endpoint:
        await write_record(endpoint, record)


async def _notify_rejection(path: Path) -> None:
    """Best effort: hang up on the peer waiting on *path*."""
    with contextlib.suppress(FifoError, OSError):
        endpoint = await open_sender(path, timeout=REJECTION_NOTICE_TIMEOUT)
        endpoint.close()


class _Handshake:
    role = ""

    def __init__(
        self,
        path: Path,
        token: str,
        *,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
    ) -> None:
        self.path = path
        self.token = token
        self.open_timeout = open_timeout
        self.c2s_path = client_to_server_path(path)
        self.s2c_path = server_to_client_path(path)

    async def _receive_verified(
        self,
        path: Path,
        expected: HandshakeKind,
        reply_path: Path | None,
        *,
        peer_answering: bool = True,
    ) -> HandshakeRecord:
        try:
            record = await _receive(path, expected, self.token, peer_answering=peer_answering)
        except HandshakeRejectedError:
            raise
        except (AuthenticationError, ProtocolViolationError, StaleRecordError) as exc:
            logger.warning("%s: rejecting handshake %s: %s", self.role, expected, exc)
            if reply_path is not None:
                await _notify_rejection(reply_path)
            raise
        logger.debug("%s: received %s from PID %d", self.role, expected, record.process_id)
        return record

    async def _send_record(self, path: Path, kind: HandshakeKind) -> None:
        logger.debug("%s: sending %s on %s", self.role, kind, path)
        await _send(path, HandshakeRecord.create(self.token, kind), timeout=self.open_timeout)


class ServerHandshake(_Handshake):
    """Server half: waits for the client to start the exchange."""

    role = "server"

    async def receive_request(self) -> HandshakeRecord:
        """Step 1: read and verify the client's request on ``.c2s``.

        A writer that hangs up without sending anything has not seen our side
        yet, so the pipe is reopened and the wait goes on.
        """
        while True:
            logger.debug("server: waiting for handshake request on %s", self.c2s_path)
            try:
                return await self._receive_verified(
                    self.c2s_path,
                    HandshakeKind.REQUEST,
                    self.s2c_path,
                    peer_answering=False,
                )
            except EndOfStreamError as exc:
                if exc.received:
                    raise
                logger.debug("server: writer left %s without a request", self.c2s_path)

    async def send_response(self) -> None:
        """Step 2: answer on ``.s2c``."""
        await self._send_record(self.s2c_path, HandshakeKind.RESPONSE)

    async def receive_ack(self) -> HandshakeRecord:
        """Step 3: reopen ``.c2s`` (recreating it if needed) and verify the ack.

        The exchange ends here, so a bad ack is not answered with a rejection.
        """
        logger.debug("server: waiting for handshake ack on %s", self.c2s_path)
        return await self._receive_verified(self.c2s_path, HandshakeKind.ACK, None)

    async def run(self) -> HandshakeRecord:
        """Run all steps and return the client's request, which names the peer."""
        request = await self.receive_request()
        await self.send_response()
        await self.receive_ack()
        logger.debug("server: handshake completed with client PID %d", request.process_id)
        return request


class ClientHandshake(_Handshake):
    """Client half: starts the exchange."""

    role = "client"

    async def send_request(self) -> None:
        """Step 1: write the request on ``.c2s``."""
        await self._send_record(self.c2s_path, HandshakeKind.REQUEST)

    async def receive_response(self) -> HandshakeRecord:
        """Step 2: read and verify the server's response on ``.s2c``."""
        logger.debug("client: waiting for handshake response on %s", self.s2c_path)
        return await self._receive_verified(self.s2c_path, HandshakeKind.RESPONSE, self.c2s_path)

    async def send_ack(self) -> None:
        """Step 3: confirm on ``.c2s``."""
        await self._send_record(self.c2s_path, HandshakeKind.ACK)

    async def run(self) -> HandshakeRecord:
        """Run all steps and return the server's response, which names the peer."""
        await self.send_request()
        response = await self.receive_response()
        await self.send_ack()
        logger.debug("client: handshake completed with server PID %d", response.process_id)
        return response


async def _run_with_deadline(
    exchange: Coroutine[Any, Any, HandshakeRecord],
    timeout: float,
) -> HandshakeRecord:
    try:
        return await asyncio.wait_for(exchange, timeout=timeout)
    except FifoError:
        raise
    except TimeoutError as exc:
        msg = f"Handshake did not complete within {timeout:g}s"
        raise HandshakeTimeoutError(msg, timeout=timeout) from exc


async def perform_server_handshake(
    path: Path,
    token: str,
    *,
    timeout: float = HANDSHAKE_TIMEOUT,
) -> HandshakeRecord:
    """Authenticate a client on the FIFOs derived from *path*.

    Returns:
        The client's request record (its pid, name, and timestamp).

    Raises:
        HandshakeTimeoutError: If no client completed the exchange in time.
        AuthenticationError: On a token mismatch or a peer rejection.
        ProtocolViolationError: If a record arrived out of order.
        StaleRecordError: If a record fell outside the replay window.
    """
    return await _run_with_deadline(ServerHandshake(path, token).run(), timeout)


async def perform_client_handshake(
    path: Path,
    token: str,
    *,
    timeout: float = HANDSHAKE_TIMEOUT,
) -> HandshakeRecord:
    """Authenticate to the server listening on the FIFOs derived from *path*.

    Returns:
        The server's response record.

    Raises:
        Same failures as :func:`perform_server_handshake`.
    """
    return await _run_with_deadline(ClientHandshake(path, token).run(), timeout)


__all__ = [
    "ClientHandshake",
    "ServerHandshake",
    "perform_client_handshake",
    "perform_server_handshake",
]
