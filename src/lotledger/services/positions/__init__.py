"""
Positions package - position lookup, lots and position bookkeeping.

Exports:
    - PositionFinder: load a position or raise PositionNotFoundError
    - EntryLotService: available lots, oldest first
    - EntryLotUpdateService: consume quantity from a lot
    - PositionUpdateService: apply a settled exit to a position
    - PositionOperationService: append-only audit trail
"""

from lotledger.services.positions.entry_lots import EntryLotService, EntryLotUpdateService
from lotledger.services.positions.finder import PositionFinder
from lotledger.services.positions.operation_log import PositionOperationService
from lotledger.services.positions.update import PositionUpdateService

__all__ = [
    "EntryLotService",
    "EntryLotUpdateService",
    "PositionFinder",
    "PositionOperationService",
    "PositionUpdateService",
]
