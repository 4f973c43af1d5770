"""Tests for the Command Line Interface (CLI) module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitsync import cli
from gitsync.git_wrapper import CommandExecutionError


@pytest.fixture(autouse=True)
def no_logging_setup(mocker: MagicMock) -> MagicMock:
    """Keeps tests from attaching handlers to the application logger."""
    return mocker.patch("gitsync.cli.daemon.setup_logging")


def test_main_runs_daemon_with_overrides(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies that flags are merged into the config passed to the daemon."""
    config_file = tmp_path / "config.toml"
    config_file.write_text('[[repositories]]\nlocal_path = "/srv/a"\n')
    mocker.patch(
        "sys.argv",
        ["gitsync", "--file", str(config_file), "--gc", "--loop", "--sleep=15"],
    )
    mock_daemon = mocker.patch("gitsync.daemon.main", return_value=0)

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 0
    config = mock_daemon.call_args[0][0]
    assert config.gc_enabled is True
    assert config.loop_enabled is True
    assert config.sleep_interval == 15
    assert [str(r.local_path) for r in config.repositories] == ["/srv/a"]


def test_main_propagates_daemon_failure(tmp_path: Path, mocker: MagicMock) -> None:
    mocker.patch("sys.argv", ["gitsync", "--file", str(tmp_path / "none.toml")])
    mocker.patch("gitsync.daemon.main", return_value=1)

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1


def test_main_config_syntax_error_exits(tmp_path: Path, mocker: MagicMock) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("loop = [\n")
    mocker.patch("sys.argv", ["gitsync", "--file", str(config_file)])
    mock_daemon = mocker.patch("gitsync.daemon.main")

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    mock_daemon.assert_not_called()


def test_collect_overrides_only_passed_flags() -> None:
    args = cli.build_parser().parse_args([])
    assert cli.collect_overrides(args) == {}


def test_init_clones_and_registers(tmp_path: Path, mocker: MagicMock) -> None:
    config_file = tmp_path / "config.toml"
    mocker.patch(
        "sys.argv",
        [
            "gitsync",
            "--file",
            str(config_file),
            "--init",
            "--protocol=ssh",
            "--remote_user=git",
            "--remote_host=example.com",
            "--remote_path=srv/repo.git",
            "--local_path=/srv/work",
        ],
    )
    mock_init = mocker.patch("gitsync.cli.ops.init_repository")
    mock_daemon = mocker.patch("gitsync.daemon.main")

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 0
    mock_daemon.assert_not_called()
    args = mock_init.call_args[0]
    assert args == (config_file, "/srv/work", "ssh://git@example.com/srv/repo.git")


def test_init_missing_arguments(tmp_path: Path, mocker: MagicMock) -> None:
    mocker.patch(
        "sys.argv",
        ["gitsync", "--file", str(tmp_path / "c.toml"), "--init", "--protocol=ssh"],
    )
    mock_init = mocker.patch("gitsync.cli.ops.init_repository")

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
    mock_init.assert_not_called()


def test_init_clone_failure(tmp_path: Path, mocker: MagicMock) -> None:
    mocker.patch(
        "sys.argv",
        [
            "gitsync",
            "--file",
            str(tmp_path / "c.toml"),
            "--init",
            "--protocol=file",
            "--remote_path=srv/repo.git",
            "--local_path=/srv/work",
        ],
    )
    mocker.patch(
        "gitsync.cli.ops.init_repository",
        side_effect=CommandExecutionError("git clone", 128),
    )

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1
