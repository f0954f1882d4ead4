"""Configuration of cosmovisor, read from environment variables.

Usage
-----
::

    from cosmovisor.config import load_config_from_env

    cfg = load_config_from_env()
    print(cfg.detail_string())

``load_config_from_env`` collects every problem it finds before raising,
so the user sees all of them at once.  One problem is raised as a
``ConfigError``; several are raised together as a ``MultiError``.
"""
from __future__ import annotations

import logging
import os
import re
import stat
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from cosmovisor.errors import ConfigError, flatten_errors

logger = logging.getLogger(__name__)

ENV_HOME = "DAEMON_HOME"
ENV_NAME = "DAEMON_NAME"
ENV_DOWNLOAD_BIN = "DAEMON_ALLOW_DOWNLOAD_BINARIES"
ENV_RESTART_UPGRADE = "DAEMON_RESTART_AFTER_UPGRADE"
ENV_SKIP_BACKUP = "UNSAFE_SKIP_BACKUP"
ENV_DATA_BACKUP_PATH = "DAEMON_DATA_BACKUP_DIR"
ENV_INTERVAL = "DAEMON_POLL_INTERVAL"
ENV_PREUPGRADE_MAX_RETRIES = "DAEMON_PREUPGRADE_MAX_RETRIES"

ROOT_NAME = "cosmovisor"
GENESIS_DIR = "genesis"
UPGRADES_DIR = "upgrades"
CURRENT_LINK = "current"
UPGRADE_FILENAME = "upgrade-info.json"

DEFAULT_POLL_INTERVAL = timedelta(milliseconds=300)

_DURATION_UNITS_US: dict[str, float] = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_FULL = re.compile(r"[+-]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")


@dataclass(frozen=True)
class EnvironmentPresence:
    """Whether the two required environment variables are set.

    A variable only counts as set when it is present *and* non-empty.
    """

    name_set: bool
    home_set: bool

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> EnvironmentPresence:
        env = os.environ if environ is None else environ
        return cls(
            name_set=bool(env.get(ENV_NAME)),
            home_set=bool(env.get(ENV_HOME)),
        )


@dataclass
class Config:
    """Validated cosmovisor settings.

    Parameters
    ----------
    home:
        Application home directory (``DAEMON_HOME``).
    name:
        Name of the managed binary (``DAEMON_NAME``).
    allow_download_binaries:
        Whether missing upgrade binaries may be downloaded.
    restart_after_upgrade:
        Whether the app is restarted after an upgrade.
    poll_interval:
        How often the upgrade-info file is polled.
    unsafe_skip_backup:
        Skip the data backup before an upgrade.
    data_backup_path:
        Where data backups are written.  Defaults to ``home``.
    preupgrade_max_retries:
        How often the pre-upgrade handler may be retried.
    """

    home: str
    name: str
    allow_download_binaries: bool = False
    restart_after_upgrade: bool = True
    poll_interval: timedelta = field(default=DEFAULT_POLL_INTERVAL)
    unsafe_skip_backup: bool = False
    data_backup_path: str = ""
    preupgrade_max_retries: int = 0

    def root(self) -> Path:
        """Return the cosmovisor directory inside the home directory."""
        return Path(self.home) / ROOT_NAME

    def genesis_bin(self) -> Path:
        return self.root() / GENESIS_DIR / "bin" / self.name

    def base_upgrade_dir(self) -> Path:
        return self.root() / UPGRADES_DIR

    def current_link(self) -> Path:
        return self.root() / CURRENT_LINK

    def upgrade_info_file_path(self) -> Path:
        """Return the path of the file written by the app's upgrade module."""
        return Path(self.home) / "data" / UPGRADE_FILENAME

    def detail_string(self) -> str:
        """Return a multi-line, human-readable rendering of this config."""
        configurable = [
            (ENV_HOME, self.home),
            (ENV_NAME, self.name),
            (ENV_DOWNLOAD_BIN, _format_bool(self.allow_download_binaries)),
            (ENV_RESTART_UPGRADE, _format_bool(self.restart_after_upgrade)),
            (ENV_INTERVAL, format_duration(self.poll_interval)),
            (ENV_SKIP_BACKUP, _format_bool(self.unsafe_skip_backup)),
            (ENV_DATA_BACKUP_PATH, self.data_backup_path),
            (ENV_PREUPGRADE_MAX_RETRIES, str(self.preupgrade_max_retries)),
        ]
        derived = [
            ("Root Dir", str(self.root())),
            ("Upgrade Dir", str(self.base_upgrade_dir())),
            ("Genesis Bin", str(self.genesis_bin())),
            ("Monitored File", str(self.upgrade_info_file_path())),
        ]

        lines = ["Configurable Values:"]
        lines.extend(f"  {name}: {value}" for name, value in configurable)
        lines.append("Derived Values:")
        width = max(len(name) for name, _ in derived)
        lines.extend(f"  {name:>{width}}: {value}" for name, value in derived)
        return "\n".join(lines) + "\n"

    def validate(self) -> list[ConfigError]:
        """Check required values and directories, returning every problem found.

        Fills in ``data_backup_path`` with ``home`` when it is empty.
        """
        errs: list[ConfigError] = []
        if not self.name:
            errs.append(ConfigError(f"{ENV_NAME} is not set"))

        if not self.home:
            errs.append(ConfigError(f"{ENV_HOME} is not set"))
        elif not os.path.isabs(self.home):
            errs.append(ConfigError(f"{ENV_HOME} must be an absolute path"))
        else:
            root = self.root()
            try:
                info = root.stat()
            except OSError as exc:
                errs.append(ConfigError(f"cannot stat home dir: {exc}"))
            else:
                if not stat.S_ISDIR(info.st_mode):
                    errs.append(ConfigError(f"{root} is not a directory"))

        if not self.data_backup_path:
            self.data_backup_path = self.home
        elif not os.path.isabs(self.data_backup_path):
            errs.append(ConfigError(f"{self.data_backup_path} must be an absolute path"))
        else:
            backup = Path(self.data_backup_path)
            try:
                info = backup.stat()
            except OSError as exc:
                errs.append(ConfigError(f"{self.data_backup_path!r} must be a valid directory: {exc}"))
            else:
                if not stat.S_ISDIR(info.st_mode):
                    errs.append(ConfigError(f"{self.data_backup_path!r} must be a valid directory"))
        return errs


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _trim_number(value: float) -> str:
    text = f"{value:.9f}".rstrip("0").rstrip(".")
    return text or "0"


def format_duration(value: timedelta) -> str:
    """Render ``value`` compactly, e.g. ``300ms``, ``1.5s`` or ``1m30s``."""
    total_us = value // timedelta(microseconds=1)
    if total_us == 0:
        return "0s"
    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)
    if total_us < 1_000:
        return f"{sign}{total_us}µs"
    if total_us < 1_000_000:
        return f"{sign}{_trim_number(total_us / 1_000)}ms"

    hours, rest = divmod(total_us, 3_600_000_000)
    minutes, rest = divmod(rest, 60_000_000)
    seconds = _trim_number(rest / 1_000_000)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def parse_duration(text: str) -> timedelta:
    """Parse a duration string such as ``"1m30s"`` or ``"250ms"``.

    Raises
    ------
    ValueError
        If ``text`` is not a valid duration.
    """
    if not _DURATION_FULL.fullmatch(text):
        raise ValueError(f"invalid duration {text!r}")
    total_us = sum(
        float(number) * _DURATION_UNITS_US[unit] for number, unit in _DURATION_PART.findall(text)
    )
    total = timedelta(microseconds=total_us)
    return -total if text.startswith("-") else total


def parse_poll_interval(value: str) -> timedelta:
    """Parse ``DAEMON_POLL_INTERVAL``: a bare run of digits is milliseconds."""
    if value.isascii() and value.isdigit():
        try:
            interval = timedelta(milliseconds=int(value))
        except OverflowError:
            raise ConfigError(f"invalid {ENV_INTERVAL}: {value} is out of range") from None
    else:
        try:
            interval = parse_duration(value)
        except (ValueError, OverflowError):
            raise ConfigError(
                f'invalid {ENV_INTERVAL}: could not parse "{value}" into either '
                "a duration or uint (milliseconds)"
            ) from None
    if interval <= timedelta():
        raise ConfigError(f"invalid {ENV_INTERVAL}: must be greater than 0")
    return interval


def boolean_option(environ: Mapping[str, str], name: str, default: bool) -> bool:
    """Read a boolean environment variable; empty means ``default``."""
    raw = environ.get(name, "")
    lowered = raw.lower()
    if lowered == "":
        return default
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ConfigError(
        f'env variable "{name}" must have a boolean value ("true" or "false"), got "{raw}"'
    )


def load_config_from_env(environ: Mapping[str, str] | None = None) -> Config:
    """Build and validate a ``Config`` from environment variables.

    Parameters
    ----------
    environ:
        The variables to read.  Defaults to ``os.environ``.

    Returns
    -------
    Config
        The validated configuration.

    Raises
    ------
    ConfigError
        If exactly one problem was found.
    MultiError
        If several problems were found; each is listed individually.
    """
    env = os.environ if environ is None else environ
    errs: list[Exception] = []

    cfg = Config(
        home=env.get(ENV_HOME, ""),
        name=env.get(ENV_NAME, ""),
        data_backup_path=env.get(ENV_DATA_BACKUP_PATH, ""),
    )

    for attr, name, default in (
        ("allow_download_binaries", ENV_DOWNLOAD_BIN, False),
        ("restart_after_upgrade", ENV_RESTART_UPGRADE, True),
        ("unsafe_skip_backup", ENV_SKIP_BACKUP, False),
    ):
        try:
            setattr(cfg, attr, boolean_option(env, name, default))
        except ConfigError as exc:
            errs.append(exc)

    interval = env.get(ENV_INTERVAL, "")
    if interval:
        try:
            cfg.poll_interval = parse_poll_interval(interval)
        except ConfigError as exc:
            errs.append(exc)

    retries = env.get(ENV_PREUPGRADE_MAX_RETRIES, "")
    if retries:
        try:
            cfg.preupgrade_max_retries = int(retries)
        except ValueError as exc:
            errs.append(ConfigError(f"{ENV_PREUPGRADE_MAX_RETRIES} could not be parsed to int: {exc}"))

    errs.extend(cfg.validate())

    err = flatten_errors(*errs)
    if err is not None:
        logger.debug("Configuration from environment is invalid: %s", err)
        raise err
    logger.debug("Loaded configuration for %r from %s", cfg.name, cfg.home)
    return cfg
