"""Tests for the configuration management subsystem."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_autosync.config import Config, parse_minutes, parse_size


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with sensible defaults."""
    conf = Config()
    assert conf.sync.repository_path == ""
    assert conf.sync.remote_branch == "origin/master"
    assert conf.triggers.auto_sync is False
    assert conf.triggers.interval == 30
    assert conf.triggers.sync_on_focus_loss is False
    assert conf.triggers.button_location == "ribbon"


def test_config_load_from_file(tmp_path: Path) -> None:
    """Verifies that every section is read from TOML.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
    """
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        '[sync]\nrepository_path = "~/notes"\nremote_branch = "origin/main"\n'
        '[triggers]\nauto_sync = true\ninterval = "1.5h"\nsync_on_focus_loss = true\n'
        'button_location = "status_bar"\n'
        '[limits]\nmax_log_size = "1mb"\n'
    )

    conf = Config.load(config_file)

    assert conf.sync.path == Path.home() / "notes"
    assert conf.sync.remote_branch == "origin/main"
    assert conf.triggers.auto_sync is True
    assert conf.triggers.interval == 90
    assert conf.triggers.sync_on_focus_loss is True
    assert conf.triggers.button_location == "status_bar"
    assert conf.limits.max_log_size == 1024**2


def test_config_load_uses_global_file_by_default(
    tmp_path: Path, mocker: MagicMock
) -> None:
    global_config_path = tmp_path / "global_config.toml"
    global_config_path.write_text('[sync]\nrepository_path = "/srv/vault"\n')
    mocker.patch("git_autosync.config.CONFIG_FILE", global_config_path)

    assert Config.load().sync.repository_path == "/srv/vault"


def test_config_missing_file_yields_defaults(tmp_path: Path) -> None:
    assert Config.load(tmp_path / "absent.toml") == Config()


def test_config_invalid_keys_and_values(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    caplog.set_level(logging.WARNING)

    config_file = tmp_path / "config.toml"
    config_file.write_text(
        "[triggers]\n"
        "interval = 0\n"
        'button_location = "toolbar"\n'
        'fake_setting = "ignored"\n'
        "[limits]\n"
        'max_log_size = "10 gallons"\n'
    )

    conf = Config.load(config_file)

    assert conf.triggers.interval == 30
    assert conf.triggers.button_location == "ribbon"
    assert conf.limits.max_log_size == 5242880

    assert "Unknown config keys in [triggers]: fake_setting" in caplog.text
    assert "Config error in [triggers].interval" in caplog.text
    assert "Config error in [triggers].button_location" in caplog.text
    assert "Config error in [limits].max_log_size: Invalid size format" in caplog.text


def test_config_wrong_value_types_fall_back_to_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies quoted booleans and non-string paths are rejected, not coerced."""
    caplog.set_level(logging.WARNING)

    config_file = tmp_path / "config.toml"
    config_file.write_text(
        "[sync]\n"
        "repository_path = 5\n"
        "[triggers]\n"
        'auto_sync = "false"\n'
        "sync_on_focus_loss = 1\n"
    )

    conf = Config.load(config_file)

    assert conf.sync.repository_path == ""
    assert conf.triggers.auto_sync is False
    assert conf.triggers.sync_on_focus_loss is False
    assert "Config error in [sync].repository_path: Expected str" in caplog.text
    assert "Config error in [triggers].auto_sync: Expected bool" in caplog.text


def test_config_syntax_error_falls_back_to_defaults(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[sync\nrepository_path = ")

    conf = Config.load(config_file)

    assert conf == Config()
    assert "Config syntax error" in caplog.text


def test_parse_minutes() -> None:
    """Verifies that human-readable intervals are converted to minutes."""
    assert parse_minutes(30) == 30
    assert parse_minutes("45m") == 45
    assert parse_minutes("10 min") == 10
    assert parse_minutes("2 hrs") == 120
    assert parse_minutes("1.5h") == 90

    with pytest.raises(ValueError, match=r"Invalid interval format '10 lightyears'"):
        parse_minutes("10 lightyears")
    with pytest.raises(ValueError, match="positive"):
        parse_minutes(-5)
    with pytest.raises(ValueError):
        parse_minutes(True)


def test_parse_size() -> None:
    """Verifies that human-readable sizes are correctly converted to bytes."""
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")
    with pytest.raises(ValueError):
        parse_size(True)
