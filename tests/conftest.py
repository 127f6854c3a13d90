"""Pytest fixtures for sfifo tests."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

from sfifo.paths import remove_handshake_fifos

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="sfifo-tests-"))
os.environ["SFIFO_RUNTIME_DIR"] = str(_TEST_BASE_DIR / "run")

if TYPE_CHECKING:
    from collections.abc import Generator


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture
def fifo_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Location for a FIFO; the node itself is not created."""
    path = tmp_path / "channel"
    yield path
    remove_handshake_fifos(path)
