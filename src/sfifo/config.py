"""Immutable configuration handle for opening a FIFO."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sfifo.constants import DEFAULT_OPEN_TIMEOUT, HANDSHAKE_TIMEOUT
from sfifo.paths import client_to_server_path, server_to_client_path


class FifoConfig(BaseModel):
    """Options shared by every open operation on one FIFO path.

    The model is frozen; derive variants with :meth:`with_options`. ``read``
    and ``write`` only matter to the legacy combined open, which refuses to
    have both set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path = Field(description="Location of the primary FIFO")
    timeout: float = Field(
        default=DEFAULT_OPEN_TIMEOUT,
        gt=0,
        description="Seconds a sender open waits for a reader",
    )
    handshake_timeout: float = Field(
        default=HANDSHAKE_TIMEOUT,
        gt=0,
        description="Seconds allowed for the whole authentication exchange",
    )
    notify: bool = Field(
        default=False,
        description="Wait for a reader until the FIFO is deleted instead of timing out",
    )
    create: bool = Field(default=False, description="Create the FIFO node if absent")
    read: bool = Field(default=False, description="Legacy open: open the read end")
    write: bool = Field(default=False, description="Legacy open: open the write end")
    blocking: bool = Field(
        default=True,
        description="Legacy open: retrying open and blocking file vs. one raw non-blocking open",
    )

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def client_to_server_path(self) -> Path:
        return client_to_server_path(self.path)

    @property
    def server_to_client_path(self) -> Path:
        return server_to_client_path(self.path)

    def with_options(self, **changes: Any) -> FifoConfig:
        """Return a validated copy with *changes* applied."""
        return FifoConfig.model_validate({**self.model_dump(), **changes})

    @classmethod
    def from_toml(cls, file: Path, *, table: str = "fifo", **overrides: Any) -> FifoConfig:
        """Load a configuration from the ``[table]`` section of a TOML file.

        Keyword *overrides* take precedence over the file's values.
        """
        with file.open("rb") as handle:
            data = tomllib.load(handle)
        section = data.get(table, {})
        if not isinstance(section, dict):
            msg = f"[{table}] in {file} must be a table"
            raise ValueError(msg)
        return cls.model_validate({**section, **overrides})


__all__ = ["FifoConfig"]
