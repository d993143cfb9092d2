"""Shared fixtures for CLI command tests."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from lotledger.services.ledger import InMemoryLedgerStore, Position, save_snapshot
from lotledger.system import LoggerFactory
from lotledger.system import config as config_module
from lotledger.system.config import CONFIG_ENV_VAR


@pytest.fixture
def cli_runner():
    """Fixture providing Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_cli_config(tmp_path, monkeypatch):
    """Run commands on built-in defaults and leave logging/config as found."""
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "no-config.yaml"))
    saved = config_module._system_config
    yield
    config_module._system_config = saved
    LoggerFactory.reset()


@pytest.fixture
def ledger_file(tmp_path, store: InMemoryLedgerStore, two_lot_position: Position) -> Path:
    """Two-lot PETR4 position written as a YAML snapshot."""
    path = tmp_path / "ledger.yaml"
    save_snapshot(store, path)
    return path
