"""Typed failures raised by FIFO opens, handshakes, and channels."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# ── Base ───────────────────────────────────────────────────────────────


class FifoError(Exception):
    """Base for every sfifo failure, with a machine-readable code."""

    code: str = "FIFO_ERROR"


# ── Open / wait failures ───────────────────────────────────────────────


class FifoTimeoutError(FifoError, TimeoutError):
    """Raised when a bounded wait expires."""

    code = "TIMEOUT"

    def __init__(self, message: str, *, timeout: float) -> None:
        super().__init__(message)
        self.timeout = timeout


class HandshakeTimeoutError(FifoTimeoutError):
    """Raised when the overall handshake deadline expires."""

    code = "HANDSHAKE_TIMEOUT"


class FifoDeletedError(FifoError):
    """Raised when the watched FIFO node disappears during a wait."""

    code = "DELETED"

    def __init__(self, path: Path) -> None:
        super().__init__(f"FIFO {path} was deleted while waiting for a peer")
        self.path = path


class OpenCancelledError(FifoError):
    """Raised by a retrying open whose cancellation token fired."""

    code = "CANCELLED"

    def __init__(self, path: Path) -> None:
        super().__init__(f"Open of {path} was cancelled")
        self.path = path


# ── Handshake failures ─────────────────────────────────────────────────


class ProtocolViolationError(FifoError):
    """Raised when a handshake record has the wrong kind for the current step."""

    code = "PROTOCOL_VIOLATION"

    def __init__(self, expected: str, received: str) -> None:
        super().__init__(f"Expected handshake {expected}, received {received}")
        self.expected = expected
        self.received = received


class AuthenticationError(FifoError):
    """Raised when a peer presents the wrong token."""

    code = "AUTH_FAILED"


class HandshakeRejectedError(AuthenticationError):
    """Raised when the peer hung up on the handshake instead of answering."""

    code = "HANDSHAKE_REJECTED"


class StaleRecordError(FifoError):
    """Raised when a handshake record is older than the replay window."""

    code = "STALE_RECORD"

    def __init__(self, age: int, max_age: int) -> None:
        super().__init__(f"Handshake record is {age}s old (limit {max_age}s)")
        self.age = age
        self.max_age = max_age


# ── Data and usage failures ────────────────────────────────────────────


class DataFormatError(FifoError, ValueError):
    """Raised for malformed or oversized framed payloads."""

    code = "DATA_FORMAT"


class InvalidOperationError(FifoError):
    """Raised when an operation does not match the endpoint's direction."""

    code = "INVALID_OPERATION"


class EndOfStreamError(FifoError, EOFError):
    """Raised when the peer closed the pipe before an exact-length read finished."""

    code = "END_OF_STREAM"

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Pipe closed after {received} of {expected} bytes")
        self.expected = expected
        self.received = received


__all__ = [
    "AuthenticationError",
    "DataFormatError",
    "EndOfStreamError",
    "FifoDeletedError",
    "FifoError",
    "FifoTimeoutError",
    "HandshakeRejectedError",
    "HandshakeTimeoutError",
    "InvalidOperationError",
    "OpenCancelledError",
    "ProtocolViolationError",
    "StaleRecordError",
]
