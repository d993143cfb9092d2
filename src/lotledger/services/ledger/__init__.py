"""
Ledger package - domain models and persistence for positions and lots.

Exports:
    - Models: Position, EntryLot, ExitRecord, Operation, AverageOperationGroup,
      PositionOperation, Instrument and their enums
    - ILedgerStore / ILedgerSession: persistence protocols
    - InMemoryLedgerStore: thread-safe in-memory implementation
    - Snapshot helpers: load_snapshot, save_snapshot, store_from_snapshot, store_to_snapshot
"""

from lotledger.services.ledger.interface import ILedgerSession, ILedgerStore
from lotledger.services.ledger.memory_store import InMemoryLedgerSession, InMemoryLedgerStore
from lotledger.services.ledger.models import (
    AssetType,
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    ExitStrategy,
    GroupStatus,
    Instrument,
    Operation,
    OperationStatus,
    Position,
    PositionOperation,
    PositionOperationType,
    PositionStatus,
    TradeType,
    TransactionType,
)
from lotledger.services.ledger.snapshot import load_snapshot, save_snapshot, store_from_snapshot, store_to_snapshot

__all__ = [
    "AssetType",
    "AverageOperationGroup",
    "EntryLot",
    "ExitRecord",
    "ExitStrategy",
    "GroupStatus",
    "ILedgerSession",
    "ILedgerStore",
    "InMemoryLedgerSession",
    "InMemoryLedgerStore",
    "Instrument",
    "Operation",
    "OperationStatus",
    "Position",
    "PositionOperation",
    "PositionOperationType",
    "PositionStatus",
    "TradeType",
    "TransactionType",
    "load_snapshot",
    "save_snapshot",
    "store_from_snapshot",
    "store_to_snapshot",
]
