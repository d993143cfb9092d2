"""
In-memory ledger store.

Concurrency model:
- One threading.Lock per position, held for the lifetime of a session.
  Exits on the same position are serialized; different positions run in
  parallel.
- Sessions read deep copies and stage every write locally.
- commit() re-checks the position version under the store-wide data lock
  and applies all staged writes in one step, or none of them.

The store never retries. A StaleVersionError or lock timeout is surfaced to
the caller, who may retry the whole unit of work.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from lotledger.errors import EntryLotNotFoundError, InvalidStateError, StaleVersionError
from lotledger.services.ledger.models import (
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    Operation,
    Position,
    PositionOperation,
)
from lotledger.system import LoggerFactory, get_system_config

logger = LoggerFactory.get_logger()


def _lot_order(lot: EntryLot) -> tuple[Any, int]:
    return (lot.entry_date, lot.sequence_number)


class InMemoryLedgerSession:
    """
    Unit of work on one position against an InMemoryLedgerStore.

    Entities read through the session are cached in an identity map: reading
    the same lot twice returns the same object, so changes made by one
    service are visible to the next one within the same settlement.
    """

    def __init__(self, store: "InMemoryLedgerStore", position_id: str) -> None:
        self.position_id = position_id
        self._store = store
        self._active = True

        self._positions: dict[str, Position] = {}
        self._loaded_versions: dict[str, Optional[int]] = {}
        self._lots: dict[str, EntryLot] = {}
        self._operations: dict[str, Operation] = {}
        self._groups: dict[str, AverageOperationGroup] = {}

        self._dirty_positions: set[str] = set()
        self._dirty_lots: set[str] = set()
        self._dirty_operations: set[str] = set()
        self._dirty_groups: set[str] = set()

        self._new_exit_records: list[ExitRecord] = []
        self._new_position_operations: list[PositionOperation] = []

    @property
    def is_active(self) -> bool:
        return self._active

    def _ensure_active(self) -> None:
        if not self._active:
            raise InvalidStateError("Session already committed or rolled back", position_id=self.position_id)

    def _check_owned(self, position_id: str, what: str) -> None:
        if position_id != self.position_id:
            raise InvalidStateError(
                f"Session bound to position {self.position_id} cannot write {what} of position {position_id}",
                position_id=self.position_id,
            )

    # Positions

    def get_position(self, position_id: str) -> Optional[Position]:
        self._ensure_active()
        if position_id not in self._positions:
            position = self._store._read_position(position_id)
            if position is None:
                return None
            self._positions[position_id] = position
            self._loaded_versions[position_id] = position.version
        return self._positions[position_id]

    def save_position(self, position: Position) -> None:
        self._ensure_active()
        self._check_owned(position.position_id, "position")
        if position.position_id not in self._loaded_versions:
            self._loaded_versions[position.position_id] = None
        self._positions[position.position_id] = position
        self._dirty_positions.add(position.position_id)

    # Entry lots

    def list_entry_lots(self, position_id: str) -> list[EntryLot]:
        self._ensure_active()
        for lot in self._store._read_entry_lots(position_id):
            self._lots.setdefault(lot.lot_id, lot)
        lots = [lot for lot in self._lots.values() if lot.position_id == position_id]
        return sorted(lots, key=_lot_order)

    def save_entry_lot(self, lot: EntryLot) -> None:
        self._ensure_active()
        self._check_owned(lot.position_id, "entry lot")
        self._lots[lot.lot_id] = lot
        self._dirty_lots.add(lot.lot_id)

    # Exit records (insert-only)

    def insert_exit_record(self, record: ExitRecord) -> None:
        self._ensure_active()
        lot = self._lots.get(record.entry_lot_id) or self._store._read_entry_lot(record.entry_lot_id)
        if lot is None:
            raise EntryLotNotFoundError(f"Entry lot not found: {record.entry_lot_id}", lot_id=record.entry_lot_id)
        self._check_owned(lot.position_id, "exit record")
        if any(r.exit_record_id == record.exit_record_id for r in self._new_exit_records):
            raise InvalidStateError(f"Exit record already staged: {record.exit_record_id}")
        self._new_exit_records.append(record)

    def list_exit_records(self, position_id: str) -> list[ExitRecord]:
        self._ensure_active()
        lot_ids = {lot.lot_id for lot in self.list_entry_lots(position_id)}
        staged = [r for r in self._new_exit_records if r.entry_lot_id in lot_ids]
        return self._store._read_exit_records(lot_ids) + staged

    # Position operations (insert-only)

    def insert_position_operation(self, entry: PositionOperation) -> None:
        self._ensure_active()
        self._check_owned(entry.position_id, "audit entry")
        expected = self.next_position_operation_sequence(entry.position_id)
        if entry.sequence_number != expected:
            raise InvalidStateError(
                f"Audit sequence gap: expected {expected}, got {entry.sequence_number}",
                position_id=entry.position_id,
            )
        self._new_position_operations.append(entry)

    def list_position_operations(self, position_id: str) -> list[PositionOperation]:
        self._ensure_active()
        staged = [e for e in self._new_position_operations if e.position_id == position_id]
        entries = self._store._read_position_operations(position_id) + staged
        return sorted(entries, key=lambda e: e.sequence_number)

    def next_position_operation_sequence(self, position_id: str) -> int:
        self._ensure_active()
        entries = self.list_position_operations(position_id)
        return entries[-1].sequence_number + 1 if entries else 1

    # Groups

    def get_group_by_operation(self, operation_id: str) -> Optional[AverageOperationGroup]:
        self._ensure_active()
        for group in self._groups.values():
            if operation_id in group.operation_ids:
                return group
        group = self._store._read_group_by_operation(operation_id)
        if group is None:
            return None
        return self._groups.setdefault(group.group_id, group)

    def save_group(self, group: AverageOperationGroup) -> None:
        self._ensure_active()
        self._check_owned(group.position_id, "group")
        self._groups[group.group_id] = group
        self._dirty_groups.add(group.group_id)

    # Operations

    def get_operation(self, operation_id: str) -> Optional[Operation]:
        self._ensure_active()
        if operation_id not in self._operations:
            operation = self._store._read_operation(operation_id)
            if operation is None:
                return None
            self._operations[operation_id] = operation
        return self._operations[operation_id]

    def save_operation(self, operation: Operation) -> None:
        self._ensure_active()
        self._operations[operation.operation_id] = operation
        self._dirty_operations.add(operation.operation_id)

    # Unit of work

    def commit(self) -> None:
        self._ensure_active()
        self._store._apply(self)
        self._active = False
        logger.debug(
            "ledger.session.committed",
            position_id=self.position_id,
            exit_records=len(self._new_exit_records),
            audit_entries=len(self._new_position_operations),
        )

    def rollback(self) -> None:
        self._ensure_active()
        self._active = False
        self._positions.clear()
        self._lots.clear()
        self._operations.clear()
        self._groups.clear()
        self._new_exit_records.clear()
        self._new_position_operations.clear()
        logger.debug("ledger.session.rolled_back", position_id=self.position_id)


class InMemoryLedgerStore:
    """
    Thread-safe in-memory implementation of ILedgerStore.

    Example:
        >>> store = InMemoryLedgerStore()
        >>> store.add_position(position)
        >>> with store.session(position.position_id) as session:
        ...     lots = session.list_entry_lots(position.position_id)
    """

    def __init__(self, lock_timeout: Optional[float] = None) -> None:
        self._positions: dict[str, Position] = {}
        self._entry_lots: dict[str, EntryLot] = {}
        self._operations: dict[str, Operation] = {}
        self._groups: dict[str, AverageOperationGroup] = {}
        self._exit_records: list[ExitRecord] = []
        self._position_operations: list[PositionOperation] = []

        self._data_lock = threading.RLock()
        self._registry_lock = threading.Lock()
        self._position_locks: dict[str, threading.Lock] = {}

        if lock_timeout is None:
            lock_timeout = get_system_config().settlement.lock_timeout_seconds
        self._lock_timeout = lock_timeout

    # Seeding (used by the opening-side orchestrator, snapshots and tests)

    def add_position(self, position: Position) -> None:
        with self._data_lock:
            self._positions[position.position_id] = position.model_copy(deep=True)

    def add_entry_lot(self, lot: EntryLot) -> None:
        with self._data_lock:
            self._entry_lots[lot.lot_id] = lot.model_copy(deep=True)

    def add_operation(self, operation: Operation) -> None:
        with self._data_lock:
            self._operations[operation.operation_id] = operation.model_copy(deep=True)

    def add_group(self, group: AverageOperationGroup) -> None:
        with self._data_lock:
            self._groups[group.group_id] = group.model_copy(deep=True)

    def add_exit_record(self, record: ExitRecord) -> None:
        with self._data_lock:
            self._exit_records.append(record)

    def add_position_operation(self, entry: PositionOperation) -> None:
        with self._data_lock:
            self._position_operations.append(entry)

    # Unit of work

    def _lock_for(self, position_id: str) -> threading.Lock:
        with self._registry_lock:
            return self._position_locks.setdefault(position_id, threading.Lock())

    @contextmanager
    def session(self, position_id: str, timeout: Optional[float] = None) -> Iterator[InMemoryLedgerSession]:
        """
        Open a unit of work on one position.

        Holds the position lock until the with-block ends. Commits on clean
        exit, rolls back if the block raises.

        Raises:
            TimeoutError: Position lock not acquired within the timeout
        """
        wait = self._lock_timeout if timeout is None else timeout
        lock = self._lock_for(position_id)
        if not lock.acquire(timeout=wait):
            raise TimeoutError(f"Timed out after {wait}s waiting for lock on position {position_id}")
        try:
            session = InMemoryLedgerSession(self, position_id)
            logger.debug("ledger.session.begin", position_id=position_id)
            try:
                yield session
            except BaseException:
                if session.is_active:
                    session.rollback()
                raise
            if session.is_active:
                session.commit()
        finally:
            lock.release()

    def _apply(self, session: InMemoryLedgerSession) -> None:
        """Apply a session's staged writes atomically."""
        with self._data_lock:
            for position_id in session._dirty_positions:
                stored = self._positions.get(position_id)
                current = stored.version if stored is not None else None
                expected = session._loaded_versions.get(position_id)
                if current != expected:
                    raise StaleVersionError(
                        f"Position {position_id} changed since it was loaded (version {expected} -> {current})",
                        position_id=position_id,
                        expected_version=expected,
                        current_version=current,
                    )
            for entry in session._new_position_operations:
                if any(
                    e.position_id == entry.position_id and e.sequence_number == entry.sequence_number
                    for e in self._position_operations
                ):
                    raise StaleVersionError(
                        f"Audit sequence {entry.sequence_number} already used on position {entry.position_id}",
                        position_id=entry.position_id,
                    )

            for position_id in session._dirty_positions:
                position = session._positions[position_id]
                if session._loaded_versions.get(position_id) is not None:
                    position.version += 1
                self._positions[position_id] = position.model_copy(deep=True)
            for lot_id in session._dirty_lots:
                self._entry_lots[lot_id] = session._lots[lot_id].model_copy(deep=True)
            for operation_id in session._dirty_operations:
                self._operations[operation_id] = session._operations[operation_id].model_copy(deep=True)
            for group_id in session._dirty_groups:
                self._groups[group_id] = session._groups[group_id].model_copy(deep=True)
            self._exit_records.extend(session._new_exit_records)
            self._position_operations.extend(session._new_position_operations)

    # Reads (deep copies, used by sessions and by read-only callers)

    def _read_position(self, position_id: str) -> Optional[Position]:
        with self._data_lock:
            position = self._positions.get(position_id)
            return position.model_copy(deep=True) if position is not None else None

    def _read_entry_lot(self, lot_id: str) -> Optional[EntryLot]:
        with self._data_lock:
            lot = self._entry_lots.get(lot_id)
            return lot.model_copy(deep=True) if lot is not None else None

    def _read_entry_lots(self, position_id: str) -> list[EntryLot]:
        with self._data_lock:
            lots = [lot.model_copy(deep=True) for lot in self._entry_lots.values() if lot.position_id == position_id]
        return sorted(lots, key=_lot_order)

    def _read_exit_records(self, lot_ids: set[str]) -> list[ExitRecord]:
        with self._data_lock:
            return [r for r in self._exit_records if r.entry_lot_id in lot_ids]

    def _read_position_operations(self, position_id: str) -> list[PositionOperation]:
        with self._data_lock:
            entries = [e for e in self._position_operations if e.position_id == position_id]
        return sorted(entries, key=lambda e: e.sequence_number)

    def _read_operation(self, operation_id: str) -> Optional[Operation]:
        with self._data_lock:
            operation = self._operations.get(operation_id)
            return operation.model_copy(deep=True) if operation is not None else None

    def _read_group_by_operation(self, operation_id: str) -> Optional[AverageOperationGroup]:
        with self._data_lock:
            for group in self._groups.values():
                if operation_id in group.operation_ids:
                    return group.model_copy(deep=True)
        return None

    def get_position(self, position_id: str) -> Optional[Position]:
        return self._read_position(position_id)

    def get_operation(self, operation_id: str) -> Optional[Operation]:
        return self._read_operation(operation_id)

    def get_group_by_operation(self, operation_id: str) -> Optional[AverageOperationGroup]:
        return self._read_group_by_operation(operation_id)

    def list_positions(self) -> list[Position]:
        with self._data_lock:
            return [p.model_copy(deep=True) for p in self._positions.values()]

    def list_entry_lots(self, position_id: str) -> list[EntryLot]:
        return self._read_entry_lots(position_id)

    def list_exit_records(self, position_id: str) -> list[ExitRecord]:
        lot_ids = {lot.lot_id for lot in self._read_entry_lots(position_id)}
        return self._read_exit_records(lot_ids)

    def list_position_operations(self, position_id: str) -> list[PositionOperation]:
        return self._read_position_operations(position_id)

    def list_operations(self) -> list[Operation]:
        with self._data_lock:
            return [o.model_copy(deep=True) for o in self._operations.values()]

    def list_groups(self) -> list[AverageOperationGroup]:
        with self._data_lock:
            return [g.model_copy(deep=True) for g in self._groups.values()]

    def list_all_exit_records(self) -> list[ExitRecord]:
        with self._data_lock:
            return list(self._exit_records)

    def list_all_position_operations(self) -> list[PositionOperation]:
        with self._data_lock:
            return list(self._position_operations)
