"""Configuration loading for thermdash.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/thermdash/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "average_period": 30,
    "history_length": 500,
    "min_height": 36,
    "sensor_root": "/sys/devices/platform",
    "log_level": "INFO",
}

_DEFAULT_PATH = Path.home() / ".config" / "thermdash" / "config.toml"

_POSITIVE_INTS = ("average_period", "history_length", "min_height")


class ConfigError(ValueError):
    """A configuration value makes the dashboard impossible to run."""


def _merge(user_config: dict[str, Any]) -> dict[str, Any]:
    """Overlay user settings on the defaults. The config is flat: no tables."""
    unknown = sorted(set(user_config) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigError(f"unknown config key(s): {', '.join(unknown)}")
    return {**DEFAULT_CONFIG, **user_config}


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/thermdash/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
        ConfigError: If the file sets a key thermdash doesn't know.
    """
    if path is not None:
        if not path.is_file():
            print(f"thermdash: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"thermdash: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _merge(user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _merge(user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"thermdash: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check the values the dashboard cannot start without.

    Raises:
        ConfigError: On a non-integer or non-positive period, history length
            or minimum height.
    """
    for key in _POSITIVE_INTS:
        value = config.get(key)
        # bool is an int subclass; `average_period = true` is still a mistake
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        if value < 1:
            raise ConfigError(f"{key} must be positive, got {value}")
    if not isinstance(config.get("sensor_root"), str):
        raise ConfigError(f"sensor_root must be a string, got {config.get('sensor_root')!r}")
    return config


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# thermdash configuration",
        "# Place this file at ~/.config/thermdash/config.toml",
        "",
        "# Seconds of samples folded into each history point",
        f"average_period = {DEFAULT_CONFIG['average_period']}",
        "# Averaged points kept per sensor",
        f"history_length = {DEFAULT_CONFIG['history_length']}",
        "# Smallest dashboard height in rows (Up/Down keys adjust above it)",
        f"min_height = {DEFAULT_CONFIG['min_height']}",
        "",
        f'sensor_root = "{DEFAULT_CONFIG["sensor_root"]}"',
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
    ]
    return "\n".join(lines) + "\n"
