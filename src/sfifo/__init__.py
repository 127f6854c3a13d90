"""sfifo: authenticated, cancellable named-pipe channels between local processes."""

from __future__ import annotations

from sfifo.cancellation import CancellationToken
from sfifo.channel import AuthenticatedChannel, ReceivingChannel, SendingChannel
from sfifo.config import FifoConfig
from sfifo.contracts import HandshakeKind, HandshakeRecord
from sfifo.endpoint import Direction, PipeEndpoint
from sfifo.errors import (
    AuthenticationError,
    DataFormatError,
    EndOfStreamError,
    FifoDeletedError,
    FifoError,
    FifoTimeoutError,
    HandshakeRejectedError,
    HandshakeTimeoutError,
    InvalidOperationError,
    OpenCancelledError,
    ProtocolViolationError,
    StaleRecordError,
)
from sfifo.fifo import NamedPipe
from sfifo.paths import create_fifo, delete_fifo

__all__ = [
    "AuthenticatedChannel",
    "AuthenticationError",
    "CancellationToken",
    "DataFormatError",
    "Direction",
    "EndOfStreamError",
    "FifoConfig",
    "FifoDeletedError",
    "FifoError",
    "FifoTimeoutError",
    "HandshakeKind",
    "HandshakeRecord",
    "HandshakeRejectedError",
    "HandshakeTimeoutError",
    "InvalidOperationError",
    "NamedPipe",
    "OpenCancelledError",
    "PipeEndpoint",
    "ProtocolViolationError",
    "ReceivingChannel",
    "SendingChannel",
    "StaleRecordError",
    "create_fifo",
    "delete_fifo",
]
