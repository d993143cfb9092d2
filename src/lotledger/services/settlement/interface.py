"""Settlement service interface."""

from typing import Protocol

from lotledger.services.settlement.models import ExitRequest, SettlementResult


class IExitSettlementService(Protocol):
    """
    Settles disposals against entry lots.

    Implementations must run each request as one unit of work: either every
    lot, record, audit entry and status change is committed, or none is.
    """

    def settle(self, request: ExitRequest) -> SettlementResult:
        """
        Settle one exit request.

        Args:
            request: Active operation id, quantity, exit date and price

        Returns:
            Committed SettlementResult
        """
        ...
