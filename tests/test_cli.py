"""Tests for the Command Line Interface (CLI) module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_autopush import cli
from git_autopush.config import Config
from git_autopush.tracker import ChangeSnapshot, Decision, Evaluation, TrackerState


@pytest.fixture
def repo_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Points the environment at a temporary repository with an author set."""
    (tmp_path / ".git").mkdir()
    monkeypatch.setenv("REPO_PATH", str(tmp_path))
    monkeypatch.setenv("AUTHOR_NAME", "Auto Bot")
    monkeypatch.setenv("AUTHOR_EMAIL", "bot@example.com")
    monkeypatch.delenv("CHECK_INTERVAL_MINUTES", raising=False)
    monkeypatch.delenv("INACTIVITY_THRESHOLD_MINUTES", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)
    return tmp_path


def test_main_defaults_to_run(mocker: MagicMock, repo_env: Path) -> None:
    """Verifies that running without a subcommand starts the monitor.

    Args:
        mocker (MagicMock): Pytest fixture for mocking.
        repo_env (Path): The temporary repository.
    """
    mock_run = mocker.patch("git_autopush.cli.run_monitor")

    cli.main([])

    config = mock_run.call_args[0][0]
    assert isinstance(config, Config)
    assert config.repo_path == repo_env


def test_main_run_overrides(mocker: MagicMock, repo_env: Path) -> None:
    """Verifies that --interval and --threshold override the environment."""
    mock_run = mocker.patch("git_autopush.cli.run_monitor")

    cli.main(["run", "--interval", "1", "--threshold", "0"])

    config = mock_run.call_args[0][0]
    assert config.check_interval == 60
    assert config.inactivity_threshold == 0


def test_main_exits_on_missing_author(
    mocker: MagicMock,
    repo_env: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    """Verifies that configuration errors exit with status 1 before the loop."""
    monkeypatch.delenv("AUTHOR_EMAIL")
    mock_run = mocker.patch("git_autopush.cli.run_monitor")

    with pytest.raises(SystemExit) as exc:
        cli.main([])

    assert exc.value.code == 1
    mock_run.assert_not_called()
    assert "Missing AUTHOR_EMAIL" in capsys.readouterr().err


def test_main_exits_on_invalid_repository(
    mocker: MagicMock,
    repo_env: Path,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path_factory: pytest.TempPathFactory,
) -> None:
    """Verifies that a path without .git is fatal."""
    monkeypatch.setenv("REPO_PATH", str(tmp_path_factory.mktemp("plain")))
    mock_run = mocker.patch("git_autopush.cli.run_monitor")

    with pytest.raises(SystemExit) as exc:
        cli.main(["run"])

    assert exc.value.code == 1
    mock_run.assert_not_called()


def test_main_exits_on_negative_override(mocker: MagicMock, repo_env: Path) -> None:
    """Verifies that a negative threshold on the command line is refused."""
    mocker.patch("git_autopush.cli.run_monitor")

    with pytest.raises(SystemExit) as exc:
        cli.main(["run", "--threshold", "-1"])

    assert exc.value.code == 1


def test_config_command_prints_settings(
    repo_env: Path, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that `config` shows the effective values."""
    cli.main(["config"])

    out = capsys.readouterr().out
    assert "AUTHOR_NAME" in out
    assert "Auto Bot" in out
    assert "60 minutes" in out


def test_check_command_reports_decision(
    mocker: MagicMock, repo_env: Path, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that `check` previews the decision without running the loop."""
    mocker.patch("git_autopush.cli.setup_logging")
    mock_scheduler = mocker.patch("git_autopush.cli.Scheduler").return_value
    mock_scheduler.config = Config(
        repo_path=repo_env, author_name="Auto Bot", author_email="bot@example.com"
    )
    snapshot = ChangeSnapshot(deleted_paths=frozenset({"old.txt"}))
    mock_scheduler.preview.return_value = (
        snapshot,
        Evaluation(Decision.CONTINUE, TrackerState.empty(), 1_700_000_000.0, 120.0),
    )

    cli.main(["check"])

    out = capsys.readouterr().out
    assert "Waiting for inactivity" in out
    assert "old.txt" in out
    mock_scheduler.run.assert_not_called()


def test_run_monitor_wires_scheduler(mocker: MagicMock, repo_env: Path) -> None:
    """Verifies that the monitor installs signal handlers and runs the loop."""
    mocker.patch("git_autopush.cli.setup_logging")
    mock_cls = mocker.patch("git_autopush.cli.Scheduler")
    mock_signals = mocker.patch("git_autopush.cli.install_signal_handlers")
    config = Config.from_env()

    cli.run_monitor(config)

    mock_cls.assert_called_once_with(config)
    mock_signals.assert_called_once_with(mock_cls.return_value)
    mock_cls.return_value.run.assert_called_once()
