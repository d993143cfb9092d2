"""
Ledger snapshot files.

A snapshot is the whole ledger as one YAML or JSON document, validated
against contracts/schemas/ledger/snapshot.v1.json before any model is built.
"""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from lotledger.contracts import load_and_compile_schema
from lotledger.services.ledger.memory_store import InMemoryLedgerStore
from lotledger.services.ledger.models import (
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    Operation,
    Position,
    PositionOperation,
)
from lotledger.system import LoggerFactory

logger = LoggerFactory.get_logger()

SNAPSHOT_SCHEMA = "ledger/snapshot.v1.json"
SNAPSHOT_VERSION = 1


def _normalize(value: Any) -> Any:
    """YAML parses unquoted dates into date objects; the contract expects ISO strings."""
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def validate_snapshot(data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a snapshot document against the ledger contract.

    Returns:
        Normalized document

    Raises:
        ValueError: If the document violates the contract
    """
    document = _normalize(data)
    validator = load_and_compile_schema(SNAPSHOT_SCHEMA)
    try:
        validator.validate(document)
    except jsonschema.ValidationError as e:
        raise ValueError(
            f"Ledger snapshot validation failed against {SNAPSHOT_SCHEMA}: {e.message}\n"
            f"Path: {list(e.path)}\n"
            f"Schema path: {list(e.schema_path)}"
        ) from e
    return document


def store_from_snapshot(data: dict[str, Any]) -> InMemoryLedgerStore:
    """Build an InMemoryLedgerStore from a snapshot document."""
    document = validate_snapshot(data)
    store = InMemoryLedgerStore()
    for item in document["positions"]:
        store.add_position(Position.model_validate(item))
    for item in document["entry_lots"]:
        store.add_entry_lot(EntryLot.model_validate(item))
    for item in document["operations"]:
        store.add_operation(Operation.model_validate(item))
    for item in document["groups"]:
        store.add_group(AverageOperationGroup.model_validate(item))
    for item in document.get("exit_records", []):
        store.add_exit_record(ExitRecord.model_validate(item))
    for item in document.get("position_operations", []):
        store.add_position_operation(PositionOperation.model_validate(item))

    logger.debug(
        "ledger.snapshot.loaded",
        positions=len(document["positions"]),
        entry_lots=len(document["entry_lots"]),
        operations=len(document["operations"]),
    )
    return store


def store_to_snapshot(store: InMemoryLedgerStore) -> dict[str, Any]:
    """Dump a store into a JSON-compatible snapshot document."""
    document = {
        "schema_version": SNAPSHOT_VERSION,
        "positions": [p.model_dump(mode="json") for p in store.list_positions()],
        "entry_lots": [
            lot.model_dump(mode="json")
            for position in store.list_positions()
            for lot in store.list_entry_lots(position.position_id)
        ],
        "operations": [o.model_dump(mode="json") for o in store.list_operations()],
        "groups": [g.model_dump(mode="json") for g in store.list_groups()],
        "exit_records": [r.model_dump(mode="json") for r in store.list_all_exit_records()],
        "position_operations": [e.model_dump(mode="json") for e in store.list_all_position_operations()],
    }
    return validate_snapshot(document)


def load_snapshot(path: Path) -> InMemoryLedgerStore:
    """Read a .yaml/.yml or .json snapshot file into a store."""
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Ledger snapshot must be a mapping, got {type(data).__name__}: {path}")
    return store_from_snapshot(data)


def save_snapshot(store: InMemoryLedgerStore, path: Path) -> None:
    """Write a store to a .yaml/.yml or .json snapshot file."""
    document = store_to_snapshot(store)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            json.dump(document, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(document, f, sort_keys=False)
    logger.debug("ledger.snapshot.saved", path=str(path))
