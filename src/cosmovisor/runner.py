"""Locating and executing the managed application binary.

The binary that is currently in use lives behind the ``current`` symlink
in the cosmovisor root directory.  The link points either at the genesis
directory or at an upgrade directory; each holds the binary under
``bin/<DAEMON_NAME>``.
"""
from __future__ import annotations

import io
import logging
import os
import stat
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from cosmovisor.config import GENESIS_DIR, Config
from cosmovisor.errors import BinaryError

logger = logging.getLogger(__name__)


def ensure_binary(path: str | os.PathLike[str]) -> None:
    """Check that ``path`` is a regular, world-executable file.

    Raises
    ------
    BinaryError
        If the file cannot be stat'ed, is not a regular file, or lacks
        the world-executable bit.
    """
    path = Path(path)
    try:
        info = path.stat()
    except OSError as exc:
        raise BinaryError(f"cannot stat dir {path}: {exc}") from exc
    if not stat.S_ISREG(info.st_mode):
        raise BinaryError(f"{path.name} is not a regular file")
    # only the world bit is checked; owner and group are not resolved
    if not info.st_mode & stat.S_IXOTH:
        raise BinaryError(f"{path.name} is not world executable")


def symlink_to_genesis(config: Config) -> Path:
    """Point the ``current`` link at the genesis directory.

    Returns the path of the genesis binary.
    """
    link = config.current_link()
    genesis = config.root() / GENESIS_DIR
    try:
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(genesis, target_is_directory=True)
    except OSError as exc:
        raise BinaryError(f"error creating symlink to genesis: {exc}") from exc
    logger.debug("Linked %s -> %s", link, genesis)
    return config.genesis_bin()


def current_bin(config: Config) -> Path:
    """Return the path of the binary the ``current`` link points at.

    A missing, non-symlink or unreadable ``current`` entry is replaced by
    a link to the genesis directory.
    """
    link = config.current_link()
    if not link.is_symlink():
        return symlink_to_genesis(config)
    try:
        dest = Path(os.readlink(link))
    except OSError:
        return symlink_to_genesis(config)
    if not dest.is_absolute():
        dest = link.parent / dest
    return dest / "bin" / config.name


def _child_target(stream: IO[str] | None) -> int | None:
    """Return what to hand to ``subprocess`` for ``stream``."""
    if stream is None:
        return None
    try:
        return stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return subprocess.PIPE


def run_help(config: Config, stdout: IO[str] | None, stderr: IO[str] | None) -> None:
    """Run the current binary with ``--help``, writing its output to the sinks.

    Streams backed by a file descriptor are handed to the child directly;
    any other text stream receives the output once the child has exited.

    Raises
    ------
    BinaryError
        If the binary is missing or invalid, cannot be started, or exits
        with a non-zero status.
    """
    bin_path = current_bin(config)
    try:
        ensure_binary(bin_path)
    except BinaryError as exc:
        raise BinaryError(f"current binary is invalid: {exc}") from exc

    for stream in (stdout, stderr):
        if stream is not None:
            stream.flush()

    logger.debug("Running %s --help", bin_path)
    try:
        proc = subprocess.run(
            [str(bin_path), "--help"],
            stdout=_child_target(stdout),
            stderr=_child_target(stderr),
            text=True,
            check=False,
        )
    except OSError as exc:
        raise BinaryError(f"could not run {bin_path}: {exc}") from exc

    if proc.stdout and stdout is not None:
        stdout.write(proc.stdout)
    if proc.stderr and stderr is not None:
        stderr.write(proc.stderr)
    if proc.returncode != 0:
        raise BinaryError(f"{bin_path} --help exited with status {proc.returncode}")


def launch(config: Config, args: Sequence[str]) -> int:
    """Run the current binary once with ``args`` and return its exit status.

    The child inherits stdin, stdout and stderr.
    """
    bin_path = current_bin(config)
    ensure_binary(bin_path)
    logger.debug("Launching %s with args %r", bin_path, list(args))
    try:
        return subprocess.call([str(bin_path), *args])
    except OSError as exc:
        raise BinaryError(f"could not run {bin_path}: {exc}") from exc
