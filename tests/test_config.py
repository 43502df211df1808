"""Tests for thermdash.config."""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from thermdash.config import (
    DEFAULT_CONFIG,
    ConfigError,
    dump_default_config,
    load_config,
    validate_config,
)


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self) -> None:
        cfg = load_config(None)
        assert cfg["average_period"] == 30
        assert cfg["history_length"] == 500
        assert cfg["min_height"] == 36

    def test_all_default_keys_present(self) -> None:
        cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_defaults_not_shared(self) -> None:
        cfg = load_config(None)
        cfg["average_period"] = 5
        assert DEFAULT_CONFIG["average_period"] == 30


class TestTomlOverlay:
    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("average_period = 10\n")
        cfg = load_config(toml_file)
        assert cfg["average_period"] == 10
        # Others remain at defaults
        assert cfg["history_length"] == 500

    def test_overrides_root(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('sensor_root = "/tmp/fake"\nhistory_length = 200\n')
        cfg = load_config(toml_file)
        assert cfg["sensor_root"] == "/tmp/fake"
        assert cfg["history_length"] == 200

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("average_period = 10\n[colors]\nwarning = \"red\"\n")
        with pytest.raises(ConfigError, match="colors"):
            load_config(toml_file)


class TestExplicitPath:
    def test_missing_explicit_path_errors(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            load_config(tmp_path / "nonexistent.toml")

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(dict(DEFAULT_CONFIG)) == DEFAULT_CONFIG

    @pytest.mark.parametrize("key", ["average_period", "history_length", "min_height"])
    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_rejected(self, key: str, value: int) -> None:
        cfg = {**DEFAULT_CONFIG, key: value}
        with pytest.raises(ConfigError, match=key):
            validate_config(cfg)

    @pytest.mark.parametrize("value", ["30", 1.5, True, None])
    def test_non_integer_period_rejected(self, value: object) -> None:
        with pytest.raises(ConfigError):
            validate_config({**DEFAULT_CONFIG, "average_period": value})

    def test_bad_root_rejected(self) -> None:
        with pytest.raises(ConfigError):
            validate_config({**DEFAULT_CONFIG, "sensor_root": 3})

    def test_config_error_is_value_error(self) -> None:
        assert issubclass(ConfigError, ValueError)


class TestDumpDefaultConfig:
    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed == DEFAULT_CONFIG

