"""Unit tests for the operation status state machine."""

from datetime import date
from decimal import Decimal

import pytest

from lotledger.errors import InvalidStateError, InvalidStatusTransitionError
from lotledger.services.ledger import InMemoryLedgerStore, Instrument, Operation, OperationStatus, TransactionType
from lotledger.services.operations import ALLOWED_TRANSITIONS, OperationStatusService, can_transition

LEGAL = [
    (OperationStatus.ACTIVE, OperationStatus.PARTIALLY_CLOSED),
    (OperationStatus.ACTIVE, OperationStatus.HIDDEN),
    (OperationStatus.ACTIVE, OperationStatus.CANCELED),
    (OperationStatus.PARTIALLY_CLOSED, OperationStatus.PARTIALLY_CLOSED),
    (OperationStatus.PARTIALLY_CLOSED, OperationStatus.HIDDEN),
    (OperationStatus.PARTIALLY_CLOSED, OperationStatus.CANCELED),
    (OperationStatus.WINNER, OperationStatus.HIDDEN),
    (OperationStatus.LOSER, OperationStatus.HIDDEN),
    (OperationStatus.NEUTRAL, OperationStatus.HIDDEN),
]


def _operation(status: OperationStatus) -> Operation:
    return Operation(
        operation_id="op-1",
        instrument=Instrument(asset_code="WEGE3"),
        transaction_type=TransactionType.BUY,
        entry_date=date(2024, 1, 1),
        status=status,
        quantity=10,
        entry_unit_price=Decimal("40.00"),
    )


class TestTransitionTable:
    def test_table_covers_every_status(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(OperationStatus)

    def test_only_listed_transitions_allowed(self) -> None:
        for current in OperationStatus:
            for target in OperationStatus:
                assert can_transition(current, target) == ((current, target) in LEGAL)

    @pytest.mark.parametrize("terminal", [OperationStatus.HIDDEN, OperationStatus.CANCELED])
    def test_terminal_states(self, terminal: OperationStatus) -> None:
        assert ALLOWED_TRANSITIONS[terminal] == frozenset()


class TestOperationStatusService:
    """Test transitions are validated and persisted."""

    @pytest.mark.parametrize("current,target", LEGAL)
    def test_legal_transition_persists(
        self, store: InMemoryLedgerStore, current: OperationStatus, target: OperationStatus
    ) -> None:
        store.add_operation(_operation(current))

        with store.session("pos-1") as session:
            operation = session.get_operation("op-1")
            OperationStatusService(session).transition(operation, target)

        assert store.get_operation("op-1").status == target

    @pytest.mark.parametrize(
        "current,target",
        [
            (OperationStatus.HIDDEN, OperationStatus.ACTIVE),
            (OperationStatus.CANCELED, OperationStatus.HIDDEN),
            (OperationStatus.WINNER, OperationStatus.ACTIVE),
            (OperationStatus.ACTIVE, OperationStatus.WINNER),
            (OperationStatus.PARTIALLY_CLOSED, OperationStatus.ACTIVE),
        ],
    )
    def test_illegal_transition_raises(
        self, store: InMemoryLedgerStore, current: OperationStatus, target: OperationStatus
    ) -> None:
        store.add_operation(_operation(current))

        with store.session("pos-1") as session:
            operation = session.get_operation("op-1")
            with pytest.raises(InvalidStatusTransitionError) as exc_info:
                OperationStatusService(session).transition(operation, target)

        assert isinstance(exc_info.value, InvalidStateError)
        assert exc_info.value.context["current"] == current.value
        assert store.get_operation("op-1").status == current
