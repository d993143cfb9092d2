"""Unit tests for ledger domain models."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from lotledger.services.ledger.models import (
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    ExitStrategy,
    Instrument,
    Operation,
    Position,
    PositionOperation,
    PositionOperationType,
    PositionStatus,
    TransactionType,
)


@pytest.fixture
def lot_kwargs() -> dict:
    return {
        "lot_id": "lot-1",
        "position_id": "pos-1",
        "entry_date": date(2024, 1, 1),
        "unit_price": Decimal("10.00"),
        "quantity": 10,
        "remaining_quantity": 10,
    }


class TestEntryLot:
    """Test EntryLot invariants."""

    def test_valid_lot(self, lot_kwargs: dict) -> None:
        lot = EntryLot(**lot_kwargs)

        assert lot.fully_consumed is False
        assert lot.sequence_number == 1
        assert lot.total_value == Decimal("100.00")

    def test_consumed_flag_must_match_remaining(self, lot_kwargs: dict) -> None:
        """Test fully_consumed is rejected while quantity remains."""
        with pytest.raises(ValidationError, match="fully_consumed"):
            EntryLot(**{**lot_kwargs, "fully_consumed": True})

    def test_zero_remaining_requires_consumed_flag(self, lot_kwargs: dict) -> None:
        with pytest.raises(ValidationError, match="fully_consumed"):
            EntryLot(**{**lot_kwargs, "remaining_quantity": 0})

        lot = EntryLot(**{**lot_kwargs, "remaining_quantity": 0, "fully_consumed": True})
        assert lot.fully_consumed is True

    def test_remaining_cannot_exceed_quantity(self, lot_kwargs: dict) -> None:
        with pytest.raises(ValidationError, match="remaining_quantity"):
            EntryLot(**{**lot_kwargs, "remaining_quantity": 11})

    @pytest.mark.parametrize("field,value", [("unit_price", Decimal("0")), ("quantity", 0)])
    def test_non_positive_values_rejected(self, lot_kwargs: dict, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            EntryLot(**{**lot_kwargs, field: value})


class TestPosition:
    """Test Position validation and helpers."""

    def test_cost_basis_and_defaults(self) -> None:
        position = Position(
            instrument=Instrument(asset_code="VALE3"),
            total_quantity=15,
            remaining_quantity=15,
            average_price=Decimal("11.00"),
            open_date=date(2024, 1, 1),
        )

        assert position.cost_basis == Decimal("165.00")
        assert position.status == PositionStatus.OPEN
        assert position.direction == TransactionType.BUY
        assert position.version == 0
        assert position.is_closed is False
        assert position.position_id  # generated

    def test_remaining_above_total_rejected(self) -> None:
        with pytest.raises(ValidationError, match="exceeds total_quantity"):
            Position(
                instrument=Instrument(asset_code="VALE3"),
                total_quantity=5,
                remaining_quantity=6,
                average_price=Decimal("1"),
                open_date=date(2024, 1, 1),
            )

    @pytest.mark.parametrize(
        "status,remaining",
        [(PositionStatus.CLOSED, 3), (PositionStatus.OPEN, 0), (PositionStatus.PARTIALLY_CLOSED, 0)],
    )
    def test_closed_status_must_match_zero_remaining(self, status: PositionStatus, remaining: int) -> None:
        with pytest.raises(ValidationError, match="CLOSED exactly when nothing remains"):
            Position(
                instrument=Instrument(asset_code="VALE3"),
                total_quantity=5,
                remaining_quantity=remaining,
                average_price=Decimal("1"),
                status=status,
                open_date=date(2024, 1, 1),
            )

    def test_closed_position_with_nothing_remaining(self) -> None:
        position = Position(
            instrument=Instrument(asset_code="VALE3"),
            total_quantity=5,
            remaining_quantity=0,
            average_price=Decimal("1"),
            status=PositionStatus.CLOSED,
            open_date=date(2024, 1, 1),
            close_date=date(2024, 1, 9),
        )

        assert position.is_closed


class TestImmutableTrails:

    """Test that settlement trails cannot be modified after creation."""

    def test_exit_record_is_frozen(self) -> None:
        record = ExitRecord(
            entry_lot_id="lot-1",
            exit_operation_id="op-exit",
            exit_date=date(2024, 1, 5),
            quantity=5,
            entry_unit_price=Decimal("11.00"),
            exit_unit_price=Decimal("12.00"),
            profit_loss=Decimal("5.00"),
            profit_loss_percentage=Decimal("0.09"),
        )

        assert record.applied_strategy == ExitStrategy.LIFO
        with pytest.raises(ValidationError):
            record.quantity = 1  # type: ignore[misc]

    def test_position_operation_is_frozen_and_sequence_starts_at_one(self) -> None:
        entry = PositionOperation(
            position_id="pos-1",
            operation_id="op-1",
            type=PositionOperationType.PARTIAL_EXIT,
            timestamp=datetime(2024, 1, 5, tzinfo=timezone.utc),
            sequence_number=1,
        )
        with pytest.raises(ValidationError):
            entry.sequence_number = 2  # type: ignore[misc]

        with pytest.raises(ValidationError, match="starts at 1"):
            PositionOperation(
                position_id="pos-1",
                operation_id="op-1",
                type=PositionOperationType.OPEN,
                timestamp=datetime(2024, 1, 5, tzinfo=timezone.utc),
                sequence_number=0,
            )


class TestOperationAndGroup:
    def test_entry_total_value_filled_from_price_and_quantity(self) -> None:
        operation = Operation(
            instrument=Instrument(asset_code="ITSA4"),
            transaction_type=TransactionType.BUY,
            entry_date=date(2024, 1, 1),
            quantity=20,
            entry_unit_price=Decimal("9.50"),
        )

        assert operation.entry_total_value == Decimal("190.00")
        assert operation.exit_unit_price is None

    def test_group_defaults(self) -> None:
        group = AverageOperationGroup(position_id="pos-1", creation_date=date(2024, 1, 1))

        assert group.operation_ids == []
        assert group.total_profit == Decimal("0")
