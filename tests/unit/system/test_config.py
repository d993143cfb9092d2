"""
Unit tests for system/config.py.

Tests the configuration structure:
- SettlementConfig: rounding, lock timeout, event publishing
- LoggingConfig: Logging configuration
- SystemConfig: Container with load(), _from_dict(), merge, env substitution
- Singleton functions: get_system_config(), reload_system_config()
"""

from pathlib import Path

import pytest

from lotledger.system import config as config_module
from lotledger.system.config import (
    CONFIG_ENV_VAR,
    LoggingConfig,
    SettlementConfig,
    SystemConfig,
    _deep_merge,
    _substitute_env_vars,
    get_system_config,
    reload_system_config,
)


@pytest.fixture(autouse=True)
def restore_singleton():
    """Keep the cached system config from leaking between tests."""
    saved = config_module._system_config
    yield
    config_module._system_config = saved


class TestSettlementConfig:
    """Test SettlementConfig dataclass."""

    def test_create_with_defaults(self):
        # Arrange & Act
        config = SettlementConfig()

        # Assert
        assert config.percentage_places == 2
        assert config.lock_timeout_seconds == 10.0
        assert config.publish_events is True

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"percentage_places": -1}, "percentage_places"),
            ({"lock_timeout_seconds": 0}, "lock_timeout_seconds"),
        ],
    )
    def test_rejects_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            SettlementConfig(**kwargs)


class TestLoggingConfig:
    """Test LoggingConfig dataclass."""

    def test_create_with_defaults(self):
        # Arrange & Act
        config = LoggingConfig()

        # Assert
        assert config.level == "INFO"
        assert config.format == "console"
        assert config.enable_file is False
        assert config.file_path == "logs/lotledger.log"
        assert config.enable_event_display is True

    def test_to_logger_config_converts_correctly(self):
        """Test to_logger_config() converts to log_system.LoggingConfig."""
        # Arrange
        config = LoggingConfig(level="DEBUG", format="json", file_path="logs/app.log")

        # Act
        logger_config = config.to_logger_config()

        # Assert
        assert logger_config.level == "DEBUG"
        assert logger_config.format == "json"
        assert logger_config.file_path == Path("logs/app.log")


class TestSystemConfigLoad:
    """Test SystemConfig.load() file loading."""

    def test_load_with_defaults_when_no_file(self, tmp_path):
        # Arrange
        nonexistent = tmp_path / "nonexistent.yaml"

        # Act
        config = SystemConfig.load(nonexistent)

        # Assert
        assert config.settlement == SettlementConfig()
        assert config.logging.level == "INFO"

    def test_load_merges_partial_config(self, tmp_path):
        """Test load() merges partial config with defaults."""
        # Arrange
        config_file = tmp_path / "partial.yaml"
        config_file.write_text(
            """
settlement:
  percentage_places: 4

logging:
  level: DEBUG
"""
        )

        # Act
        config = SystemConfig.load(config_file)

        # Assert
        assert config.settlement.percentage_places == 4
        assert config.settlement.lock_timeout_seconds == 10.0
        assert config.logging.level == "DEBUG"
        assert config.logging.format == "console"

    def test_load_handles_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        config = SystemConfig.load(config_file)

        assert config.settlement == SettlementConfig()

    def test_load_from_env_var(self, tmp_path, monkeypatch):
        # Arrange
        config_file = tmp_path / "env.yaml"
        config_file.write_text("settlement:\n  publish_events: false\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))

        # Act
        config = SystemConfig.load()

        # Assert
        assert config.settlement.publish_events is False

    def test_unknown_key_rejected(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("settlement:\n  rounding: up\n")

        with pytest.raises(TypeError):
            SystemConfig.load(config_file)

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        # Arrange
        monkeypatch.setenv("LEDGER_LOG_DIR", "/var/log/ledger")
        config_file = tmp_path / "vars.yaml"
        config_file.write_text('logging:\n  file_path: "${LEDGER_LOG_DIR}/app.log"\n')

        # Act
        config = SystemConfig.load(config_file)

        # Assert
        assert config.logging.file_path == "/var/log/ledger/app.log"


class TestSystemConfigFromDict:
    def test_from_dict_with_empty_dict_uses_all_defaults(self):
        config = SystemConfig._from_dict({})

        assert config.settlement == SettlementConfig()
        assert config.logging == LoggingConfig()

    def test_from_dict_with_partial_section(self):
        config = SystemConfig._from_dict({"settlement": {"lock_timeout_seconds": 2.5}})

        assert config.settlement.lock_timeout_seconds == 2.5
        assert config.settlement.percentage_places == 2


class TestDeepMerge:
    """Test _deep_merge() helper."""

    def test_merge_nested_dicts(self):
        base = {"a": {"x": 1, "y": 2}, "b": 3}
        override = {"a": {"y": 20}}

        result = _deep_merge(base, override)

        assert result == {"a": {"x": 1, "y": 20}, "b": 3}

    def test_merge_does_not_mutate_base(self):
        base = {"a": {"x": 1}}

        _deep_merge(base, {"a": {"x": 2}})

        assert base == {"a": {"x": 1}}

    def test_merge_handles_non_dict_values(self):
        result = _deep_merge({"a": {"x": 1}}, {"a": "flat"})

        assert result == {"a": "flat"}


class TestSubstituteEnvVars:
    """Test _substitute_env_vars() helper."""

    def test_substitute_in_nested_structures(self, monkeypatch):
        monkeypatch.setenv("LEDGER_HOME", "/srv/ledger")

        result = _substitute_env_vars({"paths": ["${LEDGER_HOME}/a", {"b": "${LEDGER_HOME}/b"}]})

        assert result == {"paths": ["/srv/ledger/a", {"b": "/srv/ledger/b"}]}

    def test_undefined_var_keeps_placeholder(self, monkeypatch):
        monkeypatch.delenv("LEDGER_UNDEFINED", raising=False)

        assert _substitute_env_vars("${LEDGER_UNDEFINED}/x") == "${LEDGER_UNDEFINED}/x"

    def test_non_string_values_unchanged(self):
        assert _substitute_env_vars({"n": 3, "f": 1.5, "b": True}) == {"n": 3, "f": 1.5, "b": True}


class TestSingletonFunctions:
    """Test get_system_config() and reload_system_config()."""

    def test_get_system_config_returns_cached_instance(self, tmp_path):
        reload_system_config(tmp_path / "missing.yaml")

        assert get_system_config() is get_system_config()

    def test_get_system_config_with_explicit_path_reloads(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("settlement:\n  percentage_places: 3\n")
        first = reload_system_config(tmp_path / "missing.yaml")

        second = get_system_config(config_file)

        assert second is not first
        assert second.settlement.percentage_places == 3

    def test_reload_system_config_creates_new_instance(self, tmp_path):
        first = reload_system_config(tmp_path / "missing.yaml")

        assert reload_system_config(tmp_path / "missing.yaml") is not first
