"""Average-operation-group lookup."""

from lotledger.errors import GroupNotFoundError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import AverageOperationGroup, Operation


class OperationGroupFinder:
    def __init__(self, session: ILedgerSession) -> None:
        self._session = session

    def find_group_by_operation(self, operation: Operation) -> AverageOperationGroup:
        """
        Resolve the group an operation belongs to.

        Raises:
            GroupNotFoundError: Operation was never grouped
        """
        group = self._session.get_group_by_operation(operation.operation_id)
        if group is None:
            raise GroupNotFoundError(
                f"No average operation group for operation {operation.operation_id}",
                operation_id=operation.operation_id,
            )
        return group
