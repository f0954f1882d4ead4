"""Fixtures for cosmovisor tests: a throwaway DAEMON_HOME and fake binaries."""
from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest

APP_NAME = "appd"


@pytest.fixture()
def expected_version() -> str:
    """Version declared in pyproject.toml; ``cosmovisor.__version__`` must match it."""
    return "0.1.0"


@pytest.fixture()
def daemon_home(tmp_path: Path) -> Path:
    """Return a home directory with an empty ``cosmovisor/genesis/bin`` tree."""
    home = tmp_path / "home"
    (home / "cosmovisor" / "genesis" / "bin").mkdir(parents=True)
    return home


@pytest.fixture()
def valid_environ(daemon_home: Path) -> dict[str, str]:
    """Return environment variables that describe a valid configuration."""
    return {"DAEMON_NAME": APP_NAME, "DAEMON_HOME": str(daemon_home)}


@pytest.fixture()
def write_binary() -> Callable[..., Path]:
    """Return a helper that writes an executable shell script."""

    def _write(path: Path, body: str, mode: int = 0o755) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        os.chmod(path, mode)
        return path

    return _write
