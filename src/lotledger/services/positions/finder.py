"""Position lookup."""

from lotledger.errors import PositionNotFoundError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import Position


class PositionFinder:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def find_position_by_id(self, position_id: str) -> Position:
        """
        Load a position.

        Raises:
            PositionNotFoundError: No position with that id
        """
        position = self._session.get_position(position_id)
        if position is None:
            raise PositionNotFoundError(f"Position not found: {position_id}", position_id=position_id)
        return position
