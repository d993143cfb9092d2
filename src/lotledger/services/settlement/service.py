"""
Exit settlement service.

Runs one exit request as one unit of work on the position that owns the
active operation:

1. Build the position context (group, position, inverse direction, lots)
2. Resolve the strategy (TOTAL or PARTIAL) and let it consume lots LIFO
3. Apply the result to the position and append the audit entry
4. Roll the result into the average operation group
5. Commit, then publish ExitSettledEvent (and PositionClosedEvent on close)

Any failure before commit discards every staged write. Nothing is retried.
"""

from typing import Any, Optional

from lotledger.errors import (
    GroupNotFoundError,
    InvalidStateError,
    LedgerError,
    OperationNotFoundError,
    StaleVersionError,
)
from lotledger.events import EventBus, ExitSettledEvent, IEventBus, PositionClosedEvent
from lotledger.services.ledger.interface import ILedgerSession, ILedgerStore
from lotledger.services.ledger.models import Position, PositionOperationType
from lotledger.services.operations.group_update import OperationGroupUpdateService
from lotledger.services.operations.profit import ProfitCalculationService
from lotledger.services.positions.operation_log import PositionOperationService
from lotledger.services.positions.update import PositionUpdateService
from lotledger.services.settlement.context_factory import ExitContextFactory
from lotledger.services.settlement.models import ExitContext, ExitRequest, SettlementResult
from lotledger.services.settlement.strategies import ExitOperationStrategyResolver
from lotledger.system import LoggerFactory, SettlementConfig, get_system_config

logger = LoggerFactory.get_logger()


class ExitSettlementService:
    """
    Settle exits against a ledger store.

    Thread-safe: concurrent calls on the same position are serialized by the
    store's position lock, calls on different positions run in parallel.

    Example:
        >>> service = ExitSettlementService(store, event_bus=EventBus())
        >>> result = service.settle(
        ...     ExitRequest(
        ...         operation_id="op-1",
        ...         quantity=5,
        ...         exit_date=date(2024, 1, 3),
        ...         exit_unit_price=Decimal("12.00"),
        ...     )
        ... )
        >>> result.strategy, result.profit_loss
        (<ExitStrategyKind.PARTIAL: 'PARTIAL'>, Decimal('10.00'))
    """

    def __init__(
        self,
        store: ILedgerStore,
        event_bus: Optional[IEventBus] = None,
        config: Optional[SettlementConfig] = None,
    ) -> None:
        self._store = store
        self._event_bus = event_bus
        self._config = config if config is not None else get_system_config().settlement
        self._profit = ProfitCalculationService(self._config.percentage_places)

    @property
    def event_bus(self) -> Optional[IEventBus]:
        return self._event_bus

    def settle(self, request: ExitRequest) -> SettlementResult:
        """
        Settle one exit request.

        Raises:
            OperationNotFoundError, GroupNotFoundError, PositionNotFoundError
            PositionClosedError: Position already CLOSED
            OperationNotOpenError: Operation already settled, hidden or canceled
            InsufficientInventoryError: Requested quantity exceeds available lots
            InvalidStateError: Quantity arithmetic or status transition rejected
            StaleVersionError: Position changed under the unit of work
            TimeoutError: Position lock not acquired in time
        """
        log = logger.bind(operation_id=request.operation_id, quantity=request.quantity)
        try:
            position_id = self._locate_position(request.operation_id)
            with self._store.session(position_id, timeout=self._config.lock_timeout_seconds) as session:
                parts = self._settle_in_session(session, position_id, request)
        except LedgerError as e:
            log.warning("settlement.exit.rejected", error_type=type(e).__name__, error=str(e), **e.context)
            raise
        except Exception as e:
            log.error("settlement.exit.failed", error_type=type(e).__name__, error=str(e))
            raise

        result = SettlementResult(**parts)
        log.info(
            "settlement.exit.settled",
            position_id=result.position.position_id,
            strategy=result.strategy.value,
            profit_loss=str(result.profit_loss),
            remaining_quantity=result.position.remaining_quantity,
            position_status=result.position.status.value,
            sequence_number=result.position_operation.sequence_number,
        )
        if result.position_closed:
            log.info(
                "settlement.position.closed",
                position_id=result.position.position_id,
                close_date=str(result.position.close_date),
                total_realized_profit=str(result.position.total_realized_profit),
            )

        if self._config.publish_events and self._event_bus is not None:
            self._publish(self._event_bus, result, request)
        return result

    def _locate_position(self, operation_id: str) -> str:
        """Find the position that must be locked for this operation."""
        if self._store.get_operation(operation_id) is None:
            raise OperationNotFoundError(f"Operation not found: {operation_id}", operation_id=operation_id)
        group = self._store.get_group_by_operation(operation_id)
        if group is None:
            raise GroupNotFoundError(
                f"No average operation group for operation {operation_id}", operation_id=operation_id
            )
        return group.position_id

    def _settle_in_session(self, session: ILedgerSession, position_id: str, request: ExitRequest) -> dict[str, Any]:
        active = session.get_operation(request.operation_id)
        if active is None:
            raise OperationNotFoundError(
                f"Operation not found: {request.operation_id}", operation_id=request.operation_id
            )
        context = ExitContext(active_operation=active, request=request)

        position_context = ExitContextFactory(session).create_position_context(context)
        if position_context.position.position_id != position_id:
            raise StaleVersionError(
                f"Operation {request.operation_id} moved to position {position_context.position.position_id}",
                position_id=position_id,
            )

        strategy = ExitOperationStrategyResolver(session, self._profit).resolve(context)
        logger.debug("settlement.strategy.selected", strategy=strategy.kind.value, position_id=position_id)
        outcome = strategy.settle(position_context)

        position = PositionUpdateService(session, self._profit).apply_exit(
            position_context.position, request, outcome.profit_loss, outcome.profit_loss_percentage
        )
        audit_type = PositionOperationType.FULL_EXIT if position.is_closed else PositionOperationType.PARTIAL_EXIT
        position_operation = PositionOperationService(session).record(
            position, outcome.exit_operation, request, audit_type
        )
        group = OperationGroupUpdateService(session).apply_exit(
            position_context.group, outcome.exit_operation, request.quantity, outcome.profit_loss
        )
        self._check_conservation(session, position)

        return {
            "position": position,
            "active_operation": active,
            "exit_operation": outcome.exit_operation,
            "group": group,
            "exit_records": outcome.exit_records,
            "position_operation": position_operation,
            "strategy": strategy.kind,
            "quantity": request.quantity,
            "profit_loss": outcome.profit_loss,
            "profit_loss_percentage": outcome.profit_loss_percentage,
        }

    @staticmethod
    def _check_conservation(session: ILedgerSession, position: Position) -> None:
        lot_remaining = sum(lot.remaining_quantity for lot in session.list_entry_lots(position.position_id))
        if lot_remaining != position.remaining_quantity:
            raise InvalidStateError(
                f"Position {position.position_id} remaining {position.remaining_quantity} "
                f"does not match its lots ({lot_remaining})",
                position_id=position.position_id,
            )

    @staticmethod
    def _publish(event_bus: IEventBus, result: SettlementResult, request: ExitRequest) -> None:
        position = result.position
        settled = ExitSettledEvent(
            correlation_id=request.correlation_id,
            position_id=position.position_id,
            operation_id=request.operation_id,
            exit_operation_id=result.exit_operation.operation_id,
            asset_code=position.instrument.asset_code,
            strategy=result.strategy.value,
            quantity=result.quantity,
            exit_date=request.exit_date.isoformat(),
            exit_unit_price=request.exit_unit_price,
            profit_loss=result.profit_loss,
            profit_loss_percentage=result.profit_loss_percentage,
            exit_record_ids=[r.exit_record_id for r in result.exit_records],
            remaining_quantity=position.remaining_quantity,
            position_status=position.status.value,
            sequence_number=result.position_operation.sequence_number,
        )
        event_bus.publish(settled)

        if result.position_closed and position.close_date is not None:
            event_bus.publish(
                PositionClosedEvent(
                    correlation_id=request.correlation_id,
                    causation_id=settled.event_id,
                    position_id=position.position_id,
                    asset_code=position.instrument.asset_code,
                    direction=position.direction.value,
                    close_date=position.close_date.isoformat(),
                    total_quantity=position.total_quantity,
                    total_realized_profit=position.total_realized_profit,
                    total_realized_profit_percentage=position.total_realized_profit_percentage,
                )
            )


def create_settlement_service(
    store: ILedgerStore,
    event_bus: Optional[IEventBus] = None,
    config: Optional[SettlementConfig] = None,
) -> ExitSettlementService:
    """Wire a settlement service with a fresh EventBus when none is supplied."""
    return ExitSettlementService(store, event_bus=event_bus if event_bus is not None else EventBus(), config=config)
