"""Process identity and clock used to stamp handshake records."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

import psutil


def current_pid() -> int:
    return os.getpid()


def current_process_name() -> str:
    """Return the display name of this process.

    Falls back to the invoking command's file name when the process table
    cannot be queried.
    """
    try:
        name = psutil.Process().name()
    except (psutil.Error, OSError):
        name = ""
    if name:
        return name
    return Path(sys.argv[0]).name if sys.argv and sys.argv[0] else "python"


def current_timestamp() -> int:
    """Seconds since the epoch, truncated."""
    return int(time.time())


__all__ = ["current_pid", "current_process_name", "current_timestamp"]
