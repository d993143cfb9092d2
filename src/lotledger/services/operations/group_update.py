"""Roll settled quantity and profit into an average operation group."""

from decimal import Decimal

from lotledger.errors import InvalidStateError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import AverageOperationGroup, GroupStatus, Operation
from lotledger.system import LoggerFactory

logger = LoggerFactory.get_logger()


class OperationGroupUpdateService:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def apply_exit(
        self,
        group: AverageOperationGroup,
        exit_operation: Operation,
        quantity: int,
        profit_loss: Decimal,
    ) -> AverageOperationGroup:
        """
        Attach the exit operation to the group and roll up its result.

        Status moves ACTIVE -> PARTIALLY_CLOSED -> CLOSED as the group's
        remaining quantity is settled.

        Raises:
            InvalidStateError: quantity exceeds the group's remaining quantity
        """
        if group.status == GroupStatus.CLOSED:
            raise InvalidStateError(f"Group {group.group_id} is already closed", group_id=group.group_id)
        if quantity > group.remaining_quantity:
            raise InvalidStateError(
                f"Cannot settle {quantity} against group {group.group_id} with {group.remaining_quantity} remaining",
                group_id=group.group_id,
                quantity=quantity,
                remaining=group.remaining_quantity,
            )

        if exit_operation.operation_id not in group.operation_ids:
            group.operation_ids.append(exit_operation.operation_id)
        group.remaining_quantity -= quantity
        group.closed_quantity += quantity
        group.total_profit += profit_loss
        group.status = GroupStatus.CLOSED if group.remaining_quantity == 0 else GroupStatus.PARTIALLY_CLOSED

        self._session.save_group(group)
        logger.debug(
            "operations.group.updated",
            group_id=group.group_id,
            closed_quantity=group.closed_quantity,
            remaining_quantity=group.remaining_quantity,
            status=group.status.value,
        )
        return group
