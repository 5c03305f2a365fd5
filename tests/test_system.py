import os
import sys
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from git_autosync import system
from git_autosync.constants import APP_TITLE


def test_get_system_picks_platform_strategy(mocker: MagicMock) -> None:
    """Verifies the factory maps platforms to notification strategies.

    Args:
        mocker (MagicMock): Pytest fixture for mocking.
    """
    mocker.patch("sys.platform", "darwin")
    assert isinstance(system.get_system(), system.MacOSStrategy)

    mocker.patch("sys.platform", "linux")
    assert isinstance(system.get_system(), system.LinuxStrategy)

    mocker.patch("sys.platform", "win32")
    assert type(system.get_system()) is system.SystemStrategy


def test_strategy_is_a_notification_sink(mocker: MagicMock) -> None:
    """Verifies calling a strategy with a message sends a titled notification."""
    strategy = system.LinuxStrategy()
    mock_popen = mocker.patch("subprocess.Popen")

    strategy("Local changes pushed to remote")

    mock_popen.assert_called_once_with(
        ["notify-send", APP_TITLE, "Local changes pushed to remote"],
        stdin=mocker.ANY,
        stdout=mocker.ANY,
        stderr=mocker.ANY,
    )
    # Fire-and-forget: the notifier process is never waited on.
    mock_popen.return_value.wait.assert_not_called()
    mock_popen.return_value.communicate.assert_not_called()


def test_linux_notify_without_notify_send(mocker: MagicMock) -> None:
    mocker.patch("subprocess.Popen", side_effect=FileNotFoundError)

    system.LinuxStrategy().notify("title", "message")


def test_macos_notify_sanitizes_quotes(mocker: MagicMock) -> None:
    mock_popen = mocker.patch("subprocess.Popen")

    system.MacOSStrategy().notify("Sync", 'Sync failed: "push" rejected')

    script = mock_popen.call_args.args[0][2]
    assert script == (
        "display notification \"Sync failed: 'push' rejected\" with title \"Sync\""
    )


def test_console_strategy_prints_raw_git_errors() -> None:
    """Verifies git output with brackets is printed verbatim, not as markup."""
    console = Console(record=True, width=120)

    system.ConsoleStrategy(console)("Sync failed: ! [rejected] master -> master")

    assert "! [rejected] master -> master" in console.export_text()


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="Linux only")
def test_hung_notify_send_does_not_block(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies a notifier that never exits does not hold up the caller."""
    fake = tmp_path / "notify-send"
    fake.write_text("#!/bin/sh\nsleep 30\n")
    fake.chmod(0o755)
    monkeypatch.setenv("PATH", f"{tmp_path}{os.pathsep}{os.environ['PATH']}")

    start = time.monotonic()
    system.LinuxStrategy()("Checking for changes...")

    assert time.monotonic() - start < 5
