"""
Ledger persistence interfaces.

The settlement core talks to storage only through these protocols. One exit
settlement runs inside one ILedgerSession: everything it reads and writes is
committed together or not at all.

ExitRecord and PositionOperation have insert methods only. There is no
update or delete path for either trail.
"""

from contextlib import AbstractContextManager
from typing import Optional, Protocol

from lotledger.services.ledger.models import (
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    Operation,
    Position,
    PositionOperation,
)


class ILedgerSession(Protocol):
    """
    Unit of work bound to a single position.

    Reads return private copies. Saves are staged until commit().
    """

    position_id: str

    def get_position(self, position_id: str) -> Optional[Position]:
        """Return the position or None if it does not exist."""
        ...

    def save_position(self, position: Position) -> None: ...

    def list_entry_lots(self, position_id: str) -> list[EntryLot]:
        """Return every lot of the position ordered by (entry_date, sequence_number)."""
        ...

    def save_entry_lot(self, lot: EntryLot) -> None: ...

    def insert_exit_record(self, record: ExitRecord) -> None: ...

    def list_exit_records(self, position_id: str) -> list[ExitRecord]: ...

    def insert_position_operation(self, entry: PositionOperation) -> None: ...

    def list_position_operations(self, position_id: str) -> list[PositionOperation]: ...

    def next_position_operation_sequence(self, position_id: str) -> int:
        """Next audit sequence number for the position (1 when none exist)."""
        ...

    def get_group_by_operation(self, operation_id: str) -> Optional[AverageOperationGroup]: ...

    def save_group(self, group: AverageOperationGroup) -> None: ...

    def get_operation(self, operation_id: str) -> Optional[Operation]: ...

    def save_operation(self, operation: Operation) -> None: ...

    def commit(self) -> None:
        """Apply all staged writes atomically and bump the position version."""
        ...

    def rollback(self) -> None:
        """Discard all staged writes."""
        ...


class ILedgerStore(Protocol):
    """
    Ledger storage.

    session() serializes units of work on the same position. Sessions on
    different positions run in parallel.
    """

    def session(self, position_id: str, timeout: Optional[float] = None) -> AbstractContextManager[ILedgerSession]:
        """
        Open a unit of work on one position.

        Commits on clean exit from the with-block, rolls back on exception.
        """
        ...

    def get_operation(self, operation_id: str) -> Optional[Operation]: ...

    def get_group_by_operation(self, operation_id: str) -> Optional[AverageOperationGroup]: ...

    def get_position(self, position_id: str) -> Optional[Position]: ...
