"""LotLedger services package.

Each service is independently testable and works against the ledger through
the ILedgerSession protocol handed to it by the settlement unit of work.
"""

from lotledger.services.ledger import InMemoryLedgerStore
from lotledger.services.settlement import ExitRequest, ExitSettlementService, SettlementResult

__all__: list[str] = [
    "ExitRequest",
    "ExitSettlementService",
    "InMemoryLedgerStore",
    "SettlementResult",
]
