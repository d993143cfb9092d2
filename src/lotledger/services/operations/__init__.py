"""
Operations package - classification, status and group bookkeeping.

Exports:
    - TradeTypeResolver, TransactionTypeResolver: pure classifiers
    - OperationGroupFinder, OperationGroupUpdateService: average-price groups
    - OperationStatusService, ALLOWED_TRANSITIONS: status state machine
    - ProfitCalculationService: realized P&L arithmetic
"""

from lotledger.services.operations.group_finder import OperationGroupFinder
from lotledger.services.operations.group_update import OperationGroupUpdateService
from lotledger.services.operations.profit import ProfitCalculationService
from lotledger.services.operations.resolvers import TradeTypeResolver, TransactionTypeResolver
from lotledger.services.operations.status import ALLOWED_TRANSITIONS, OperationStatusService, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "OperationGroupFinder",
    "OperationGroupUpdateService",
    "OperationStatusService",
    "ProfitCalculationService",
    "TradeTypeResolver",
    "TransactionTypeResolver",
    "can_transition",
]
