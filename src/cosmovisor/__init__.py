"""cosmovisor — a process manager for Cosmos SDK application binaries.

Exports
-------
The help decision and report, the environment-driven ``Config`` and its
loader, the error types, and ``run_help`` for the managed binary.
The CLI lives in ``cosmovisor.cli.main``.

Example
-------
::

    import cosmovisor

    presence = cosmovisor.EnvironmentPresence.from_environ()
    if cosmovisor.should_give_help(presence, sys.argv[1:]):
        cosmovisor.do_help()

    cosmovisor.__version__
    '0.1.0'
"""
from __future__ import annotations

__version__: str = "0.1.0"

from cosmovisor.config import Config, EnvironmentPresence, load_config_from_env
from cosmovisor.errors import (
    BinaryError,
    ConfigError,
    CosmovisorError,
    MultiError,
    flatten_errors,
)
from cosmovisor.help import do_help, get_help_text, should_give_help
from cosmovisor.runner import run_help

__all__ = [
    "__version__",
    "Config",
    "EnvironmentPresence",
    "load_config_from_env",
    "CosmovisorError",
    "ConfigError",
    "BinaryError",
    "MultiError",
    "flatten_errors",
    "should_give_help",
    "do_help",
    "get_help_text",
    "run_help",
]
