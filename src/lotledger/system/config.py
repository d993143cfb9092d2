"""
System configuration for LotLedger.

One configuration for the whole process, loaded from YAML and merged over
built-in defaults:

- SettlementConfig: how exits are settled (rounding, locking, events)
- LoggingConfig: logging setup, converted to log_system.LoggingConfig

Lookup order for the YAML file:
1. Explicit path passed to SystemConfig.load()
2. LOTLEDGER_CONFIG environment variable
3. config/lotledger.yaml in the working directory
4. Built-in defaults

String values may reference environment variables as ${VAR}.
"""

import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from lotledger.system import log_system

DEFAULT_CONFIG_PATH = Path("config/lotledger.yaml")
CONFIG_ENV_VAR = "LOTLEDGER_CONFIG"

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class SettlementConfig:
    """Settlement behaviour shared by every exit.

    Attributes:
        percentage_places: Decimal places for profit/loss percentages (ROUND_HALF_UP)
        lock_timeout_seconds: Max wait for a position lock before giving up
        publish_events: Publish ExitSettledEvent/PositionClosedEvent after commit
    """

    percentage_places: int = 2
    lock_timeout_seconds: float = 10.0
    publish_events: bool = True

    def __post_init__(self) -> None:
        if self.percentage_places < 0:
            raise ValueError(f"percentage_places must be >= 0, got {self.percentage_places}")
        if self.lock_timeout_seconds <= 0:
            raise ValueError(f"lock_timeout_seconds must be positive, got {self.lock_timeout_seconds}")


@dataclass
class LoggingConfig:
    """Logging section as it appears in YAML."""

    level: str = "INFO"
    format: str = "console"
    timestamp_format: str = "compact"
    enable_file: bool = False
    file_path: str = "logs/lotledger.log"
    file_level: str = "WARNING"
    file_rotation: bool = True
    max_file_size_mb: int = 10
    backup_count: int = 3
    enable_event_display: bool = True

    def to_logger_config(self) -> log_system.LoggingConfig:
        """Convert to the pydantic config consumed by LoggerFactory."""
        values = asdict(self)
        values["file_path"] = Path(self.file_path)
        return log_system.LoggingConfig(**values)


@dataclass
class SystemConfig:
    """Complete system configuration."""

    settlement: SettlementConfig = field(default_factory=SettlementConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "SystemConfig":
        """
        Load configuration from YAML, falling back to defaults.

        Args:
            path: Explicit config file. Missing files are treated as empty.

        Returns:
            SystemConfig with file values merged over defaults
        """
        config_path = path
        if config_path is None:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        data: dict[str, Any] = {}
        if config_path.exists():
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        merged = _deep_merge(_defaults_dict(), _substitute_env_vars(data))
        return cls._from_dict(merged)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "SystemConfig":
        merged = _deep_merge(_defaults_dict(), data)
        return cls(
            settlement=SettlementConfig(**merged["settlement"]),
            logging=LoggingConfig(**merged["logging"]),
        )


def _defaults_dict() -> dict[str, Any]:
    return {
        "settlement": asdict(SettlementConfig()),
        "logging": asdict(LoggingConfig()),
    }


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into a copy of base. Override wins."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _substitute_env_vars(value: Any) -> Any:
    """Replace ${VAR} references. Undefined variables keep the placeholder."""
    if isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    return value


_system_config: Optional[SystemConfig] = None


def get_system_config(path: Optional[Path] = None) -> SystemConfig:
    """Get the cached system config, loading it on first use or when a path is given."""
    global _system_config
    if path is not None or _system_config is None:
        _system_config = SystemConfig.load(path)
    return _system_config


def reload_system_config(path: Optional[Path] = None) -> SystemConfig:
    """Force a reload from disk."""
    global _system_config
    _system_config = SystemConfig.load(path)
    return _system_config
