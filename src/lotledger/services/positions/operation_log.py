"""Append-only audit trail of position operations."""

from datetime import datetime, time, timezone
from typing import TYPE_CHECKING

from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import Operation, Position, PositionOperation, PositionOperationType

if TYPE_CHECKING:
    from lotledger.services.settlement.models import ExitRequest


class PositionOperationService:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def record(
        self,
        position: Position,
        exit_operation: Operation,
        request: "ExitRequest",
        operation_type: PositionOperationType,
    ) -> PositionOperation:
        """
        Append one audit entry with the position's next sequence number.

        The timestamp is the exit date at midnight UTC.
        """
        entry = PositionOperation(
            position_id=position.position_id,
            operation_id=exit_operation.operation_id,
            type=operation_type,
            timestamp=datetime.combine(request.exit_date, time.min, tzinfo=timezone.utc),
            sequence_number=self._session.next_position_operation_sequence(position.position_id),
        )
        self._session.insert_position_operation(entry)
        return entry
