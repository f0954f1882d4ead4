"""CLI entry point for cosmovisor.

Invoked as::

    cosmovisor [ARGS]...

or, during development::

    python -m cosmovisor.cli.main

All arguments are handed to the managed binary unchanged.  Help is shown
instead when ``DAEMON_NAME`` or ``DAEMON_HOME`` is missing, when the first
argument is ``help``, or when any argument is ``-h`` or ``--help``.

Set ``COSMOVISOR_LOG_LEVEL`` (e.g. ``debug``) to see diagnostic logging on
stderr.
"""
from __future__ import annotations

import logging
import os
import sys

import click
from rich.console import Console

from cosmovisor.config import EnvironmentPresence, load_config_from_env
from cosmovisor.errors import CosmovisorError
from cosmovisor.help import PREFIX, do_help, should_give_help, write_line
from cosmovisor.runner import launch

console = Console()
err_console = Console(stderr=True)

ENV_LOG_LEVEL = "COSMOVISOR_LOG_LEVEL"
RAW_ARGS_KEY = "cosmovisor.raw_args"


def _configure_logging() -> None:
    """Send log records to stderr at the level named by ``COSMOVISOR_LOG_LEVEL``."""
    level_name = os.environ.get(ENV_LOG_LEVEL, "").upper()
    level = logging.getLevelName(level_name) if level_name else logging.WARNING
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


class RawArgsCommand(click.Command):
    """A command that keeps the argument list exactly as it was given.

    Click drops a bare ``--`` while parsing; the managed binary must see it.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        ctx.meta[RAW_ARGS_KEY] = list(args)
        return super().parse_args(ctx, args)


@click.command(
    name="cosmovisor",
    cls=RawArgsCommand,
    add_help_option=False,
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx: click.Context, args: tuple[str, ...]) -> None:
    """A process manager for Cosmos SDK application binaries."""
    _configure_logging()
    args = tuple(ctx.meta.get(RAW_ARGS_KEY, args))

    if should_give_help(EnvironmentPresence.from_environ(), args):
        do_help(console, err_console)
        sys.exit(0)

    try:
        cfg = load_config_from_env()
        status = launch(cfg, args)
    except CosmovisorError as exc:
        write_line(err_console, f"{PREFIX} {exc}")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    cli()
