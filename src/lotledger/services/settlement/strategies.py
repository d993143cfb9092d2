"""
Exit settlement strategies.

Two algorithms share one lot-consumption policy and differ in what happens
to the active operation afterwards:

- TOTAL: the whole active operation is settled and hidden behind its exit result
- PARTIAL: the active operation keeps its unsettled quantity open

Lots are consumed most-recent-first (LIFO). EntryLotService lists lots
oldest first, so the strategy walks that list backwards.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from lotledger.errors import InsufficientInventoryError
from lotledger.services.ledger.interface import ILedgerSession
from lotledger.services.ledger.models import ExitRecord, Operation, OperationStatus
from lotledger.services.operations.profit import ProfitCalculationService
from lotledger.services.operations.status import OperationStatusService
from lotledger.services.positions.entry_lots import EntryLotUpdateService
from lotledger.services.settlement.exit_operations import ExitOperationFactory
from lotledger.services.settlement.exit_records import ExitRecordService
from lotledger.services.settlement.models import (
    ExitContext,
    ExitPositionContext,
    ExitRequest,
    ExitStrategyKind,
    StrategyOutcome,
)
from lotledger.system import LoggerFactory

logger = LoggerFactory.get_logger()


class ExitSettlementStrategy(ABC):
    """Base settlement algorithm: check inventory, create the exit, consume lots."""

    kind: ClassVar[ExitStrategyKind]

    def __init__(self, session: ILedgerSession, profit_calculator: ProfitCalculationService) -> None:
        self._profit = profit_calculator
        self._lot_updater = EntryLotUpdateService(session)
        self._exit_records = ExitRecordService(session)
        self._exit_operations = ExitOperationFactory(session)
        self._status = OperationStatusService(session)

    def settle(self, position_context: ExitPositionContext) -> StrategyOutcome:
        """
        Settle the requested quantity against the position's lots.

        Raises:
            InsufficientInventoryError: Available lot quantity is below the
                requested quantity (raised before anything is touched)
            ZeroCostBasisError: Active operation has a zero entry price
        """
        active = position_context.context.active_operation
        request = position_context.context.request

        available = position_context.available_quantity
        if available < request.quantity:
            raise InsufficientInventoryError(
                f"Cannot exit {request.quantity} from position {position_context.position.position_id}: "
                f"only {available} available",
                position_id=position_context.position.position_id,
                requested=request.quantity,
                available=available,
            )

        profit_loss = self._profit.calculate_profit_loss(
            active.entry_unit_price, request.exit_unit_price, request.quantity, active.transaction_type
        )
        profit_loss_percentage = self._profit.calculate_profit_loss_percentage(
            profit_loss, active.entry_unit_price * request.quantity
        )

        exit_operation = self._exit_operations.create(position_context, profit_loss, profit_loss_percentage)
        exit_records = self._consume_lots(position_context, exit_operation)
        self._finalize_active_operation(active, request)

        return StrategyOutcome(
            exit_operation=exit_operation,
            exit_records=exit_records,
            profit_loss=profit_loss,
            profit_loss_percentage=profit_loss_percentage,
        )

    def _consume_lots(self, position_context: ExitPositionContext, exit_operation: Operation) -> list[ExitRecord]:
        context = position_context.context
        entry_price = context.active_operation.entry_unit_price
        direction = context.active_operation.transaction_type
        still_needed = context.request.quantity
        records: list[ExitRecord] = []

        for lot in reversed(position_context.available_lots):
            if still_needed == 0:
                break
            consumed = min(lot.remaining_quantity, still_needed)
            profit_loss = self._profit.calculate_profit_loss(
                entry_price, context.request.exit_unit_price, consumed, direction
            )
            profit_loss_percentage = self._profit.calculate_profit_loss_percentage(
                profit_loss, entry_price * consumed
            )
            records.append(
                self._exit_records.create_exit_record(
                    lot, exit_operation, context, consumed, profit_loss, profit_loss_percentage
                )
            )
            self._lot_updater.consume(lot, consumed)
            still_needed -= consumed

        logger.debug(
            "settlement.lots.consumed",
            strategy=self.kind.value,
            exit_operation_id=exit_operation.operation_id,
            lots=[r.entry_lot_id for r in records],
        )
        return records

    @abstractmethod
    def _finalize_active_operation(self, active: Operation, request: ExitRequest) -> None:
        """Update the active operation once its quantity has been settled."""


class TotalExitStrategy(ExitSettlementStrategy):
    kind = ExitStrategyKind.TOTAL

    def _finalize_active_operation(self, active: Operation, request: ExitRequest) -> None:
        self._status.transition(active, OperationStatus.HIDDEN)


class PartialExitStrategy(ExitSettlementStrategy):
    """Settles part of the active operation; the rest stays open on it."""

    kind = ExitStrategyKind.PARTIAL

    def _finalize_active_operation(self, active: Operation, request: ExitRequest) -> None:
        active.quantity -= request.quantity
        active.entry_total_value = active.entry_unit_price * active.quantity
        self._status.transition(active, OperationStatus.PARTIALLY_CLOSED)


class ExitOperationStrategyResolver:
    """Pick the settlement algorithm for an exit."""

    def __init__(self, session: ILedgerSession, profit_calculator: ProfitCalculationService) -> None:
        self._strategies: dict[ExitStrategyKind, ExitSettlementStrategy] = {
            ExitStrategyKind.TOTAL: TotalExitStrategy(session, profit_calculator),
            ExitStrategyKind.PARTIAL: PartialExitStrategy(session, profit_calculator),
        }

    @staticmethod
    def select_kind(context: ExitContext) -> ExitStrategyKind:
        """PARTIAL when the active operation holds more than the requested quantity."""
        if context.active_operation.quantity > context.request.quantity:
            return ExitStrategyKind.PARTIAL
        return ExitStrategyKind.TOTAL

    def resolve(self, context: ExitContext) -> ExitSettlementStrategy:
        return self._strategies[self.select_kind(context)]

