"""Apply a settled exit to its position."""

from decimal import Decimal
from typing import TYPE_CHECKING

from lotledger.errors import InvalidStateError, PositionClosedError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import Position, PositionStatus
from lotledger.services.operations.profit import ProfitCalculationService
from lotledger.system import LoggerFactory

if TYPE_CHECKING:
    from lotledger.services.settlement.models import ExitRequest

logger = LoggerFactory.get_logger()


class PositionUpdateService:
    """
    Position-level bookkeeping for exits.

    Keeps remaining quantity, cumulative realized profit and status in step
    with the lots consumed by a settlement.
    """

    def __init__(self, session: ILedgerSession, profit_calculator: ProfitCalculationService) -> None:
        self._session = session
        self._profit = profit_calculator

    def apply_exit(
        self,
        position: Position,
        request: "ExitRequest",
        profit_loss: Decimal,
        profit_loss_percentage: Decimal,
    ) -> Position:
        """
        Decrement remaining quantity and accumulate realized profit.

        Closes the position (status CLOSED, close_date = exit date) when the
        remaining quantity reaches zero.

        Args:
            position: Position being settled
            request: Exit being applied
            profit_loss: Realized P&L of this exit
            profit_loss_percentage: P&L ratio of this exit against its own entry value

        Raises:
            PositionClosedError: Position already CLOSED
            InvalidStateError: Exit quantity exceeds remaining quantity
        """
        if position.status == PositionStatus.CLOSED:
            raise PositionClosedError(
                f"Position {position.position_id} is closed", position_id=position.position_id
            )
        if request.quantity > position.remaining_quantity:
            raise InvalidStateError(
                f"Exit of {request.quantity} exceeds remaining {position.remaining_quantity} "
                f"on position {position.position_id}",
                position_id=position.position_id,
                quantity=request.quantity,
                remaining=position.remaining_quantity,
            )

        position.total_realized_profit += profit_loss
        position.total_realized_profit_percentage = self._profit.calculate_profit_loss_percentage(
            position.total_realized_profit, position.cost_basis
        )
        position.remaining_quantity -= request.quantity

        if position.remaining_quantity == 0:
            position.status = PositionStatus.CLOSED
            position.close_date = request.exit_date
        else:
            position.status = PositionStatus.PARTIALLY_CLOSED

        self._session.save_position(position)
        logger.debug(
            "positions.position.updated",
            position_id=position.position_id,
            remaining_quantity=position.remaining_quantity,
            status=position.status.value,
            exit_profit_loss_percentage=str(profit_loss_percentage),
        )
        return position
