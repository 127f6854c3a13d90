"""Shared timing and framing constants."""

from __future__ import annotations

DEFAULT_OPEN_TIMEOUT = 3.0  # seconds a sender open keeps retrying
HANDSHAKE_TIMEOUT = 5.0  # seconds for the whole three-step exchange
OPEN_RETRY_INTERVAL = 0.1
DELETION_POLL_INTERVAL = 0.5
REJECTION_NOTICE_TIMEOUT = 1.0

MAX_RECORD_AGE_SECONDS = 30
FRAME_HEADER_BYTES = 4
MAX_FRAME_BYTES = 4096  # payload cap, excluding the length prefix

CLIENT_TO_SERVER_SUFFIX = ".c2s"
SERVER_TO_CLIENT_SUFFIX = ".s2c"
FIFO_MODE = 0o700

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

__all__ = [
    "CLIENT_TO_SERVER_SUFFIX",
    "DEFAULT_OPEN_TIMEOUT",
    "DELETION_POLL_INTERVAL",
    "FIFO_MODE",
    "FRAME_HEADER_BYTES",
    "HANDSHAKE_TIMEOUT",
    "MAX_FRAME_BYTES",
    "MAX_RECORD_AGE_SECONDS",
    "OPEN_RETRY_INTERVAL",
    "REJECTION_NOTICE_TIMEOUT",
    "SERVER_TO_CLIENT_SUFFIX",
    "U32_MAX",
    "U64_MAX",
]
