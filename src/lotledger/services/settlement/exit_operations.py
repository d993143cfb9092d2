"""Creation of the exit-side operation."""

from decimal import Decimal

from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import Operation, OperationStatus
from lotledger.services.operations.resolvers import TradeTypeResolver
from lotledger.services.settlement.models import ExitPositionContext


def result_status(profit_loss: Decimal) -> OperationStatus:
    """WINNER, LOSER or NEUTRAL by the sign of the realized result."""
    if profit_loss > 0:
        return OperationStatus.WINNER
    if profit_loss < 0:
        return OperationStatus.LOSER
    return OperationStatus.NEUTRAL


class ExitOperationFactory:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session
        self._trade_types = TradeTypeResolver()

    def create(
        self,
        position_context: ExitPositionContext,
        profit_loss: Decimal,
        profit_loss_percentage: Decimal,
    ) -> Operation:
        """
        Build and stage the operation that closes the requested quantity.

        It runs in the inverse direction of the active operation, keeps its
        entry side and carries the realized result.
        """
        active = position_context.context.active_operation
        request = position_context.context.request

        operation = Operation(
            instrument=active.instrument,
            transaction_type=position_context.inverse_transaction_type,
            trade_type=self._trade_types.determine_trade_type(active.entry_date, request.exit_date),
            entry_date=active.entry_date,
            exit_date=request.exit_date,
            status=result_status(profit_loss),
            quantity=request.quantity,
            entry_unit_price=active.entry_unit_price,
            entry_total_value=active.entry_unit_price * request.quantity,
            exit_unit_price=request.exit_unit_price,
            exit_total_value=request.exit_unit_price * request.quantity,
            profit_loss=profit_loss,
            profit_loss_percentage=profit_loss_percentage,
        )
        self._session.save_operation(operation)
        return operation
