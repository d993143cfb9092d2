"""
Process-wide configuration and logging.

config: SystemConfig loaded from config/lotledger.yaml (get_system_config, reload_system_config)
log_system: structlog setup (LoggerFactory, LoggingConfig)
"""

from lotledger.system.config import SettlementConfig, SystemConfig, get_system_config, reload_system_config
from lotledger.system.log_system import LoggerFactory, LoggingConfig

__all__ = [
    "LoggerFactory",
    "LoggingConfig",
    "SettlementConfig",
    "SystemConfig",
    "get_system_config",
    "reload_system_config",
]
