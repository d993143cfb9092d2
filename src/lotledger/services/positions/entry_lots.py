"""
Entry lot queries and consumption.

EntryLotService lists a position's open lots in chronological order (entry
date, then sequence number). Consumption order is decided by the settlement
strategy, not here.
"""

from decimal import Decimal
from typing import Optional

from lotledger.errors import InvalidStateError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import EntryLot, Position
from lotledger.system import LoggerFactory

logger = LoggerFactory.get_logger()


class EntryLotService:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def find_available_lots(self, position: Position) -> list[EntryLot]:
        """Lots of the position with remaining quantity, oldest first."""
        lots = [lot for lot in self._session.list_entry_lots(position.position_id) if lot.remaining_quantity > 0]
        logger.debug(
            "positions.lots.available",
            position_id=position.position_id,
            count=len(lots),
            quantity=sum(lot.remaining_quantity for lot in lots),
        )
        return lots

    @staticmethod
    def available_quantity(lots: list[EntryLot]) -> int:
        return sum(lot.remaining_quantity for lot in lots)

    @staticmethod
    def weighted_average_price(lots: list[EntryLot]) -> Optional[Decimal]:
        """Average unit price of the remaining quantity, or None when nothing remains."""
        remaining = sum(lot.remaining_quantity for lot in lots)
        if remaining == 0:
            return None
        return sum((lot.unit_price * lot.remaining_quantity for lot in lots), Decimal("0")) / remaining


class EntryLotUpdateService:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def consume(self, lot: EntryLot, quantity: int) -> EntryLot:
        """
        Subtract quantity from a lot and persist it.

        Raises:
            ValueError: quantity is not positive
            InvalidStateError: lot already consumed, or quantity exceeds what remains
        """
        if quantity <= 0:
            raise ValueError(f"Consumed quantity must be positive, got {quantity}")
        if lot.fully_consumed:
            raise InvalidStateError(f"Entry lot {lot.lot_id} is already fully consumed", lot_id=lot.lot_id)
        if quantity > lot.remaining_quantity:
            raise InvalidStateError(
                f"Cannot consume {quantity} from entry lot {lot.lot_id} with {lot.remaining_quantity} remaining",
                lot_id=lot.lot_id,
                quantity=quantity,
                remaining=lot.remaining_quantity,
            )

        lot.remaining_quantity -= quantity
        lot.fully_consumed = lot.remaining_quantity == 0
        self._session.save_entry_lot(lot)

        logger.debug(
            "positions.lot.consumed",
            lot_id=lot.lot_id,
            quantity=quantity,
            remaining=lot.remaining_quantity,
            fully_consumed=lot.fully_consumed,
        )
        return lot
