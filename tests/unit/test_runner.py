"""Unit tests for cosmovisor.runner — binary checks, the ``current`` link,
running ``--help`` and launching the binary.
"""
from __future__ import annotations

import io
import os
from pathlib import Path

import pytest

from cosmovisor.config import Config
from cosmovisor.errors import BinaryError
from cosmovisor.runner import current_bin, ensure_binary, launch, run_help


@pytest.fixture()
def config(daemon_home: Path) -> Config:
    return Config(home=str(daemon_home), name="appd", data_backup_path=str(daemon_home))


@pytest.fixture()
def genesis_bin(config: Config) -> Path:
    return config.genesis_bin()


# ===========================================================================
# ensure_binary
# ===========================================================================


class TestEnsureBinary:
    def test_executable_file_passes(self, tmp_path: Path, write_binary) -> None:
        ensure_binary(write_binary(tmp_path / "appd", "exit 0"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BinaryError, match="cannot stat"):
            ensure_binary(tmp_path / "missing")

    def test_directory_is_not_regular(self, tmp_path: Path) -> None:
        with pytest.raises(BinaryError, match="is not a regular file"):
            ensure_binary(tmp_path)

    def test_requires_world_executable_bit(self, tmp_path: Path, write_binary) -> None:
        path = write_binary(tmp_path / "appd", "exit 0", mode=0o750)
        with pytest.raises(BinaryError, match="appd is not world executable"):
            ensure_binary(path)


# ===========================================================================
# current_bin
# ===========================================================================


class TestCurrentBin:
    def test_missing_link_points_to_genesis(self, config: Config, genesis_bin: Path) -> None:
        assert current_bin(config) == genesis_bin
        link = config.current_link()
        assert link.is_symlink()
        assert Path(os.readlink(link)) == config.root() / "genesis"

    def test_follows_existing_link(self, config: Config) -> None:
        upgrade = config.base_upgrade_dir() / "v2"
        (upgrade / "bin").mkdir(parents=True)
        config.current_link().symlink_to(upgrade, target_is_directory=True)
        assert current_bin(config) == upgrade / "bin" / "appd"

    def test_relative_link_is_resolved_against_root(self, config: Config) -> None:
        (config.base_upgrade_dir() / "v2" / "bin").mkdir(parents=True)
        config.current_link().symlink_to(Path("upgrades") / "v2", target_is_directory=True)
        assert current_bin(config) == config.root() / "upgrades" / "v2" / "bin" / "appd"

    def test_regular_file_is_replaced_by_link(self, config: Config, genesis_bin: Path) -> None:
        config.current_link().write_text("stale", encoding="utf-8")
        assert current_bin(config) == genesis_bin
        assert config.current_link().is_symlink()

    def test_link_creation_failure(self, config: Config) -> None:
        config.current_link().mkdir()
        with pytest.raises(BinaryError, match="error creating symlink to genesis"):
            current_bin(config)


# ===========================================================================
# run_help
# ===========================================================================


class TestRunHelp:
    def test_output_reaches_text_streams(self, config: Config, genesis_bin: Path, write_binary) -> None:
        write_binary(genesis_bin, 'echo "usage: appd $1"\necho "warn" >&2')
        out, err = io.StringIO(), io.StringIO()
        run_help(config, out, err)
        assert out.getvalue() == "usage: appd --help\n"
        assert err.getvalue() == "warn\n"

    def test_output_reaches_real_files(
        self, config: Config, genesis_bin: Path, write_binary, tmp_path: Path
    ) -> None:
        write_binary(genesis_bin, 'echo "usage: appd $1"')
        out_path = tmp_path / "out.txt"
        with open(out_path, "w", encoding="utf-8") as out, open(os.devnull, "w") as err:
            run_help(config, out, err)
        assert out_path.read_text(encoding="utf-8") == "usage: appd --help\n"

    def test_missing_binary(self, config: Config) -> None:
        with pytest.raises(BinaryError, match="current binary is invalid"):
            run_help(config, io.StringIO(), io.StringIO())

    def test_non_zero_exit(self, config: Config, genesis_bin: Path, write_binary) -> None:
        write_binary(genesis_bin, "exit 3")
        with pytest.raises(BinaryError, match="exited with status 3"):
            run_help(config, io.StringIO(), io.StringIO())

    def test_uses_upgrade_binary_when_linked(self, config: Config, write_binary) -> None:
        upgrade = config.base_upgrade_dir() / "v2"
        write_binary(upgrade / "bin" / "appd", 'echo "v2"')
        config.current_link().symlink_to(upgrade, target_is_directory=True)
        out = io.StringIO()
        run_help(config, out, io.StringIO())
        assert out.getvalue() == "v2\n"


# ===========================================================================
# launch
# ===========================================================================


class TestLaunch:
    def test_returns_exit_status(self, config: Config, genesis_bin: Path, write_binary) -> None:
        write_binary(genesis_bin, 'test "$1" = start && exit 7\nexit 1')
        assert launch(config, ["start"]) == 7

    def test_invalid_binary(self, config: Config) -> None:
        with pytest.raises(BinaryError):
            launch(config, ["start"])
