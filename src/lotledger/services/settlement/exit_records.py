"""Creation of immutable exit records."""

from decimal import Decimal

from lotledger.errors import InvalidStateError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import EntryLot, ExitRecord, ExitStrategy, Operation
from lotledger.services.settlement.models import ExitContext


class ExitRecordService:
    """Insert-only: there is no update or delete path for exit records."""

    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def create_exit_record(
        self,
        lot: EntryLot,
        exit_operation: Operation,
        context: ExitContext,
        quantity: int,
        profit_loss: Decimal,
        profit_loss_percentage: Decimal,
    ) -> ExitRecord:
        """
        Record one consumption of a lot by an exit.

        Entry price is the active operation's entry price at settlement time.
        Must be called before the lot is decremented.

        Raises:
            ValueError: quantity is not positive
            InvalidStateError: quantity exceeds the lot's remaining quantity
        """
        if quantity <= 0:
            raise ValueError(f"Exit record quantity must be positive, got {quantity}")
        if quantity > lot.remaining_quantity:
            raise InvalidStateError(
                f"Exit record of {quantity} exceeds remaining {lot.remaining_quantity} on lot {lot.lot_id}",
                lot_id=lot.lot_id,
            )

        record = ExitRecord(
            entry_lot_id=lot.lot_id,
            exit_operation_id=exit_operation.operation_id,
            exit_date=context.request.exit_date,
            quantity=quantity,
            entry_unit_price=context.active_operation.entry_unit_price,
            exit_unit_price=context.request.exit_unit_price,
            profit_loss=profit_loss,
            profit_loss_percentage=profit_loss_percentage,
            applied_strategy=ExitStrategy.LIFO,
        )
        self._session.insert_exit_record(record)
        return record
