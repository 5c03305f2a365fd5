import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    BUTTON_LOCATIONS,
    CONFIG_FILE,
    DEFAULT_INTERVAL_MINUTES,
    DEFAULT_REMOTE_BRANCH,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid size '{value}'")
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_minutes(value: int | str) -> int:
    """Converts human-readable durations (e.g., '45m', '1hr') to whole minutes.

    Raises:
        ValueError: If the value cannot be parsed or is not strictly positive.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid interval '{value}'")
    if isinstance(value, int):
        minutes = value
    else:
        match = re.match(
            r"^(\d+(?:\.\d+)?)\s*(m|min|h|hr)s?$", str(value).strip().lower()
        )
        if not match:
            raise ValueError(f"Invalid interval format '{value}'")
        num, unit = float(match.group(1)), match.group(2)
        multiplier = {"m": 1, "min": 1, "h": 60, "hr": 60}
        minutes = int(num * multiplier[unit])
    if minutes <= 0:
        raise ValueError(f"Interval must be a positive number of minutes: '{value}'")
    return minutes


def parse_button_location(value: str) -> str:
    if value not in BUTTON_LOCATIONS:
        raise ValueError(
            f"Invalid button location '{value}' "
            f"(expected one of: {', '.join(BUTTON_LOCATIONS)})"
        )
    return value


_PARSERS = {
    "interval": parse_minutes,
    "max_log_size": parse_size,
    "button_location": parse_button_location,
}


def _check_type(value: Any, default: Any) -> Any:
    """Rejects a value whose type differs from the field default."""
    if type(value) is not type(default):
        raise ValueError(
            f"Expected {type(default).__name__}, got {type(value).__name__} '{value}'"
        )
    return value


@dataclass
class SyncConfig:
    """Repository settings.

    Attributes:
        repository_path (str): Local path of the repository to synchronize.
            Empty means not configured; every sync is refused.
        remote_branch (str): The remote-tracking branch diffed against HEAD.
    """

    repository_path: str = ""
    remote_branch: str = DEFAULT_REMOTE_BRANCH

    @property
    def path(self) -> Path:
        """The repository path with `~` expanded."""
        return Path(self.repository_path).expanduser()


@dataclass
class TriggerConfig:
    """Automatic trigger settings.

    Attributes:
        auto_sync (bool): Whether the recurring timer is installed.
        interval (int): Minutes between timer-triggered syncs.
        sync_on_focus_loss (bool): Whether focus loss triggers a sync.
        button_location (str): Where the host shows the manual sync button.
    """

    auto_sync: bool = False
    interval: int = DEFAULT_INTERVAL_MINUTES
    sync_on_focus_loss: bool = False
    button_location: str = "ribbon"


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class Config:
    """Global configuration aggregator.

    The sync core only reads this object; it is rebuilt from disk whenever
    the settings change.

    Attributes:
        sync (SyncConfig): Repository settings.
        triggers (TriggerConfig): Timer and focus-loss settings.
        limits (LimitsConfig): Resource limits.
    """

    sync: SyncConfig = field(default_factory=SyncConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from a TOML file on top of the defaults.

        Args:
            path (Path | None): The file to read. Defaults to the global
                CONFIG_FILE.

        Returns:
            Config: The populated configuration object.
        """
        instance = cls()
        source = path or CONFIG_FILE
        if source.exists():
            instance._merge_from_file(source)
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return

        unknown = set(data.keys()) - {"sync", "triggers", "limits"}
        if unknown:
            logger.warning(
                f"Unknown config sections in {path.name}: "
                f"{', '.join(sorted(unknown))}. Ignoring."
            )

        if "sync" in data:
            self.sync = self._update_dataclass("sync", self.sync, data["sync"])
        if "triggers" in data:
            self.triggers = self._update_dataclass(
                "triggers", self.triggers, data["triggers"]
            )
        if "limits" in data:
            self.limits = self._update_dataclass("limits", self.limits, data["limits"])

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                parser = _PARSERS.get(k)
                if parser:
                    filtered_updates[k] = parser(v)
                else:
                    filtered_updates[k] = _check_type(v, getattr(instance, k))
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
