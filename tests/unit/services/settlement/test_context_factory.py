"""Unit tests for ExitContextFactory."""

from datetime import date
from decimal import Decimal

import pytest

from lotledger.errors import GroupNotFoundError, OperationNotOpenError, PositionClosedError, PositionNotFoundError
from lotledger.services.ledger import InMemoryLedgerStore, OperationStatus, Position, PositionStatus, TransactionType
from lotledger.services.settlement import ExitContext, ExitContextFactory, ExitRequest


def _context(session, quantity: int = 5) -> ExitContext:
    return ExitContext(
        active_operation=session.get_operation("p1-op"),
        request=ExitRequest(
            operation_id="p1-op", quantity=quantity, exit_date=date(2024, 1, 5), exit_unit_price=Decimal("12")
        ),
    )


class TestCreatePositionContext:
    def test_assembles_context(self, store: InMemoryLedgerStore, two_lot_position: Position) -> None:
        with store.session(two_lot_position.position_id) as session:
            position_context = ExitContextFactory(session).create_position_context(_context(session))

        assert position_context.group.group_id == "p1-grp"
        assert position_context.position.position_id == two_lot_position.position_id
        assert position_context.inverse_transaction_type == TransactionType.SELL
        assert [lot.lot_id for lot in position_context.available_lots] == ["p1-lot-1", "p1-lot-2"]
        assert position_context.available_quantity == 15

    def test_short_position_inverse_is_buy(self, store: InMemoryLedgerStore, ledger_factory) -> None:
        position = ledger_factory([(date(2024, 1, 1), "20.00", 10)], direction=TransactionType.SELL)

        with store.session(position.position_id) as session:
            position_context = ExitContextFactory(session).create_position_context(_context(session))

        assert position_context.inverse_transaction_type == TransactionType.BUY

    def test_closed_position_rejected(self, store: InMemoryLedgerStore, two_lot_position: Position) -> None:
        store.add_position(
            two_lot_position.model_copy(
                update={"status": PositionStatus.CLOSED, "remaining_quantity": 0, "close_date": date(2024, 1, 4)}
            )
        )

        with store.session(two_lot_position.position_id) as session:
            with pytest.raises(PositionClosedError, match="accepts no further exits"):
                ExitContextFactory(session).create_position_context(_context(session))

    @pytest.mark.parametrize(
        "status",
        [
            OperationStatus.WINNER,
            OperationStatus.LOSER,
            OperationStatus.NEUTRAL,
            OperationStatus.HIDDEN,
            OperationStatus.CANCELED,
        ],
    )
    def test_operation_without_open_quantity_rejected(
        self, store: InMemoryLedgerStore, two_lot_position: Position, status: OperationStatus
    ) -> None:
        with store.session(two_lot_position.position_id) as session:
            context = _context(session)
            context.active_operation = context.active_operation.model_copy(update={"status": status})
            with pytest.raises(OperationNotOpenError, match="cannot be exited"):
                ExitContextFactory(session).create_position_context(context)

    def test_ungrouped_operation(
self, store: InMemoryLedgerStore, two_lot_position: Position) -> None:
        with store.session(two_lot_position.position_id) as session:
            context = _context(session)
            context.active_operation = context.active_operation.model_copy(update={"operation_id": "loose"})
            with pytest.raises(GroupNotFoundError):
                ExitContextFactory(session).create_position_context(context)

    def test_group_pointing_at_missing_position(self, store: InMemoryLedgerStore, two_lot_position: Position) -> None:
        group = store.get_group_by_operation("p1-op")
        store.add_group(group.model_copy(update={"position_id": "gone"}))

        with store.session(two_lot_position.position_id) as session:
            with pytest.raises(PositionNotFoundError):
                ExitContextFactory(session).create_position_context(_context(session))
