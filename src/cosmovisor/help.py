"""Help detection and the diagnostic help report.

``should_give_help`` decides whether the user asked for help, or needs it
because required configuration is missing.  ``do_help`` prints the usage
text, says whether the configuration is valid (listing every problem when
it is not) and finally tries to show the managed binary's own ``--help``.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import IO

from rich.console import Console

from cosmovisor.config import (
    ENV_HOME,
    ENV_NAME,
    Config,
    EnvironmentPresence,
    load_config_from_env,
)
from cosmovisor.errors import MultiError
from cosmovisor.runner import run_help

logger = logging.getLogger(__name__)

PREFIX = "[cosmovisor]"

HELP_FLAGS = frozenset({"-h", "--help"})

ConfigLoader = Callable[[Mapping[str, str] | None], Config]
BinaryHelpRunner = Callable[[Config, IO[str], IO[str]], None]


def should_give_help(presence: EnvironmentPresence, args: Sequence[str]) -> bool:
    """Return True if help is needed or being requested.

    Help is needed when ``DAEMON_NAME`` or ``DAEMON_HOME`` is unset or
    empty.  Help is requested when the first argument is ``help``, or when
    any argument is exactly ``-h`` or ``--help``.
    """
    if not presence.name_set or not presence.home_set:
        return True
    if not args:
        return False
    if args[0] == "help":
        return True
    return any(arg in HELP_FLAGS for arg in args)


def get_help_text() -> str:
    """Return the usage text with the environment variable names filled in."""
    return f"""Cosmosvisor - A process manager for Cosmos SDK application binaries.

Cosmovisor is a wrapper for a Cosmos SDK based App (set using the required {ENV_NAME} env variable).
It starts the App by passing all provided arguments and monitors the {ENV_HOME}/data/upgrade-info.json
file to perform an update. The upgrade-info.json file is created by the App x/upgrade module
when the blockchain height reaches an approved upgrade proposal. The file includes data from
the proposal. Cosmovisor interprets that data to perform an update: switch a current binary
and restart the App.

Configuration of Cosmovisor is done through environment variables, which are
documented in: https://github.com/cosmos/cosmos-sdk/tree/master/cosmovisor/README.md
"""


def write_line(console: Console, text: str) -> None:
    """Write ``text`` and a newline to the console's stream, byte for byte."""
    console.file.write(text + "\n")
    console.file.flush()


def do_help(
    console: Console | None = None,
    err_console: Console | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    load_config: ConfigLoader = load_config_from_env,
    run_binary_help: BinaryHelpRunner = run_help,
) -> None:
    """Print the help text, the config status and the binary's own help.

    Parameters
    ----------
    console:
        Where regular output goes.  Defaults to stdout.
    err_console:
        Where problems are reported.  Defaults to stderr.
    environ:
        Environment handed to ``load_config``.  ``None`` means
        ``os.environ``.
    load_config:
        Builds a validated ``Config`` or raises.  A ``MultiError`` is
        listed error by error; anything else is reported on one line.
    run_binary_help:
        Runs the managed binary with ``--help``.  A failure here is
        reported but does not abort the report.
    """
    console = console if console is not None else Console()
    err_console = err_console if err_console is not None else Console(stderr=True)

    write_line(console, get_help_text())

    # An invalid config ends the report once every problem is listed.
    try:
        cfg = load_config(environ)
    except MultiError as merr:
        write_line(err_console, f"{PREFIX} multiple configuration errors found:")
        for i, err in enumerate(merr.get_errors(), start=1):
            write_line(err_console, f"  {i}: {err}")
        return
    except Exception as exc:  # noqa: BLE001
        write_line(err_console, f"{PREFIX} {exc}")
        return

    write_line(console, f"{PREFIX} config is valid:")
    write_line(console, cfg.detail_string())

    try:
        run_binary_help(cfg, console.file, err_console.file)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Binary help failed for %r", cfg.name, exc_info=True)
        write_line(err_console, f"{PREFIX} {exc}")
