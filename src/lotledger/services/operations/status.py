"""
Operation status state machine.

Transitions not listed in ALLOWED_TRANSITIONS are rejected. HIDDEN and
CANCELED are terminal. Exit results (WINNER, LOSER, NEUTRAL) may only be
hidden.
"""

from lotledger.errors import InvalidStatusTransitionError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import Operation, OperationStatus
from lotledger.system import LoggerFactory

logger = LoggerFactory.get_logger()

ALLOWED_TRANSITIONS: dict[OperationStatus, frozenset[OperationStatus]] = {
    OperationStatus.ACTIVE: frozenset(
        {OperationStatus.PARTIALLY_CLOSED, OperationStatus.HIDDEN, OperationStatus.CANCELED}
    ),
    OperationStatus.PARTIALLY_CLOSED: frozenset(
        {OperationStatus.PARTIALLY_CLOSED, OperationStatus.HIDDEN, OperationStatus.CANCELED}
    ),
    OperationStatus.WINNER: frozenset({OperationStatus.HIDDEN}),
    OperationStatus.LOSER: frozenset({OperationStatus.HIDDEN}),
    OperationStatus.NEUTRAL: frozenset({OperationStatus.HIDDEN}),
    OperationStatus.HIDDEN: frozenset(),
    OperationStatus.CANCELED: frozenset(),
}


def can_transition(current: OperationStatus, target: OperationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class OperationStatusService:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def transition(self, operation: Operation, target: OperationStatus) -> Operation:
        """
        Move an operation to target status and persist it.

        Raises:
            InvalidStatusTransitionError: Transition not in the table
        """
        current = operation.status
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(
                f"Operation {operation.operation_id} cannot go from {current.value} to {target.value}",
                operation_id=operation.operation_id,
                current=current.value,
                target=target.value,
            )
        operation.status = target
        self._session.save_operation(operation)
        logger.debug(
            "operations.status.changed",
            operation_id=operation.operation_id,
            from_status=current.value,
            to_status=target.value,
        )
        return operation
