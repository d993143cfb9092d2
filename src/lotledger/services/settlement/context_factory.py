"""Assemble the position-level context of an exit."""

from lotledger.errors import OperationNotOpenError, PositionClosedError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import OperationStatus
from lotledger.services.operations.group_finder import OperationGroupFinder
from lotledger.services.operations.resolvers import TransactionTypeResolver
from lotledger.services.positions.entry_lots import EntryLotService
from lotledger.services.positions.finder import PositionFinder
from lotledger.services.settlement.models import ExitContext, ExitPositionContext

# Only entry operations with open quantity can be exited; exit operations
# share the group but carry a result status instead
EXITABLE_STATUSES = frozenset({OperationStatus.ACTIVE, OperationStatus.PARTIALLY_CLOSED})


class ExitContextFactory:
    """
    Gather group, position, inverse direction and available lots for an exit.

    Read-only: nothing is mutated here.
    """

    def __init__(self, session: ILedgerSession) -> None:
        self._groups = OperationGroupFinder(session)
        self._positions = PositionFinder(session)
        self._lots = EntryLotService(session)
        self._transaction_types = TransactionTypeResolver()

    def create_position_context(self, context: ExitContext) -> ExitPositionContext:
        """
        Raises:
            OperationNotOpenError: Operation is not ACTIVE or PARTIALLY_CLOSED
            GroupNotFoundError: Active operation is not grouped
            PositionNotFoundError: Group points at a missing position
            PositionClosedError: Position is already CLOSED
        """
        operation = context.active_operation
        if operation.status not in EXITABLE_STATUSES:
            raise OperationNotOpenError(
                f"Operation {operation.operation_id} is {operation.status.value} and cannot be exited",
                operation_id=operation.operation_id,
                status=operation.status.value,
            )

        group = self._groups.find_group_by_operation(operation)
        position = self._positions.find_position_by_id(group.position_id)
        if position.is_closed:
            raise PositionClosedError(
                f"Position {position.position_id} is closed and accepts no further exits",
                position_id=position.position_id,
                close_date=str(position.close_date),
            )

        return ExitPositionContext(
            context=context,
            group=group,
            position=position,
            inverse_transaction_type=self._transaction_types.resolve_inverse_transaction_type(
                operation.transaction_type
            ),
            available_lots=self._lots.find_available_lots(position),
        )
