"""FIFO node helpers and path derivation for the handshake side channels."""

from __future__ import annotations

import contextlib
import logging
import os
import stat
from pathlib import Path

from platformdirs import user_runtime_dir

from sfifo.constants import CLIENT_TO_SERVER_SUFFIX, FIFO_MODE, SERVER_TO_CLIENT_SUFFIX

logger = logging.getLogger(__name__)


def get_runtime_dir() -> Path:
    """Get the directory holding FIFOs created without an explicit location."""
    override = os.environ.get("SFIFO_RUNTIME_DIR")
    if override:
        return Path(override).resolve()
    return Path(user_runtime_dir("sfifo"))


def default_fifo_path(name: str) -> Path:
    """Return ``<runtime dir>/<name>``, creating the runtime directory."""
    runtime_dir = get_runtime_dir()
    runtime_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
    return runtime_dir / name


def _with_suffix(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def client_to_server_path(path: Path) -> Path:
    """FIFO carrying handshake records from the client to the server."""
    return _with_suffix(path, CLIENT_TO_SERVER_SUFFIX)


def server_to_client_path(path: Path) -> Path:
    """FIFO carrying handshake records from the server to the client."""
    return _with_suffix(path, SERVER_TO_CLIENT_SUFFIX)


def is_fifo(path: Path) -> bool:
    try:
        return stat.S_ISFIFO(path.stat().st_mode)
    except OSError:
        return False


def create_fifo(path: Path) -> None:
    """Create an owner-only FIFO at *path* unless something already exists there.

    Losing a creation race against the peer is not an error.
    """
    if path.exists():
        return
    try:
        os.mkfifo(path, FIFO_MODE)
    except FileExistsError:
        return
    logger.debug("Created FIFO %s", path)


def delete_fifo(path: Path) -> None:
    """Remove the FIFO node at *path*.

    Raises:
        FileNotFoundError: If nothing exists at *path*.
    """
    path.unlink()
    logger.debug("Removed FIFO %s", path)


def remove_handshake_fifos(path: Path) -> None:
    """Remove the derived ``.c2s``/``.s2c`` nodes left behind by a handshake."""
    for derived in (client_to_server_path(path), server_to_client_path(path)):
        with contextlib.suppress(FileNotFoundError):
            derived.unlink()


__all__ = [
    "client_to_server_path",
    "create_fifo",
    "default_fifo_path",
    "delete_fifo",
    "get_runtime_dir",
    "is_fifo",
    "remove_handshake_fifos",
    "server_to_client_path",
]
