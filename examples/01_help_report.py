#!/usr/bin/env python3
"""Example: the cosmovisor help report

Shows how help is detected from arguments and environment, and renders
the diagnostic report for an invalid and a valid configuration.  The
binary runner is replaced by a stub so nothing is executed.

Usage:
    python examples/01_help_report.py

Requirements:
    pip install cosmovisor
"""
from __future__ import annotations

import tempfile
from pathlib import Path

from cosmovisor import EnvironmentPresence, do_help, should_give_help


def stub_runner(cfg, stdout, stderr) -> None:
    stdout.write(f"(would run {cfg.genesis_bin()} --help)\n")


def main() -> None:
    presence = EnvironmentPresence(name_set=True, home_set=True)
    for args in ([], ["start"], ["help"], ["start", "--help"]):
        print(f"should_give_help({args!r}) -> {should_give_help(presence, args)}")

    print("\n--- invalid configuration ---")
    do_help(environ={"DAEMON_POLL_INTERVAL": "soon"}, run_binary_help=stub_runner)

    print("\n--- valid configuration ---")
    with tempfile.TemporaryDirectory() as home:
        (Path(home) / "cosmovisor").mkdir()
        do_help(
            environ={"DAEMON_NAME": "appd", "DAEMON_HOME": home},
            run_binary_help=stub_runner,
        )


if __name__ == "__main__":
    main()
