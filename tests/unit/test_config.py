from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sfifo.config import FifoConfig


def test_defaults() -> None:
    config = FifoConfig(path=Path("/tmp/pipe"))

    assert config.timeout == 3.0
    assert config.handshake_timeout == 5.0
    assert not (config.notify or config.create or config.read or config.write)
    assert config.blocking


def test_config_is_frozen() -> None:
    config = FifoConfig(path=Path("/tmp/pipe"))
    with pytest.raises(ValidationError):
        config.timeout = 10.0  # type: ignore[misc]


def test_with_options_returns_validated_copy() -> None:
    base = FifoConfig(path=Path("/tmp/pipe"))
    changed = base.with_options(timeout=1.5, notify=True)

    assert changed.timeout == 1.5
    assert changed.notify
    assert base.timeout == 3.0
    assert not base.notify


def test_with_options_rejects_invalid_values() -> None:
    base = FifoConfig(path=Path("/tmp/pipe"))
    with pytest.raises(ValidationError):
        base.with_options(timeout=0)
    with pytest.raises(ValidationError):
        base.with_options(unknown=True)


def test_derived_handshake_paths_append_suffix() -> None:
    config = FifoConfig(path=Path("/run/app/jobs.fifo"))

    assert config.client_to_server_path == Path("/run/app/jobs.fifo.c2s")
    assert config.server_to_client_path == Path("/run/app/jobs.fifo.s2c")


def test_home_is_expanded() -> None:
    assert FifoConfig(path=Path("~/pipe")).path == Path.home() / "pipe"


def test_from_toml_reads_table_and_applies_overrides(tmp_path: Path) -> None:
    config_file = tmp_path / "sfifo.toml"
    config_file.write_text(
        '[fifo]\npath = "/tmp/from-file"\ntimeout = 7.5\nnotify = true\n',
        encoding="utf-8",
    )

    config = FifoConfig.from_toml(config_file, notify=False)

    assert config.path == Path("/tmp/from-file")
    assert config.timeout == 7.5
    assert not config.notify


def test_from_toml_rejects_non_table_section(tmp_path: Path) -> None:
    config_file = tmp_path / "sfifo.toml"
    config_file.write_text('fifo = "nope"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="must be a table"):
        FifoConfig.from_toml(config_file, path=Path("/tmp/x"))
