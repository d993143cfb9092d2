"""Root conftest - shared ledger fixtures."""

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional

import pytest

# Add project root to sys.path for test helpers
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from lotledger.services.ledger import (  # noqa: E402
    AverageOperationGroup,
    EntryLot,
    InMemoryLedgerStore,
    Instrument,
    Operation,
    Position,
    TransactionType,
)

LotSpec = tuple[date, str, int]


@pytest.fixture
def instrument() -> Instrument:
    return Instrument(asset_code="PETR4", name="Petrobras PN")


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Fresh in-memory ledger per test."""
    return InMemoryLedgerStore(lock_timeout=5.0)


@pytest.fixture
def ledger_factory(store: InMemoryLedgerStore, instrument: Instrument) -> Callable[..., Position]:
    """
    Seed a position with its lots, active operation and group.

    The active operation carries the position's weighted-average entry price
    and full quantity. Ids are "<prefix>-pos", "<prefix>-op", "<prefix>-grp"
    and "<prefix>-lot-<n>".
    """

    def _build(
        lots: list[LotSpec],
        prefix: str = "p1",
        direction: TransactionType = TransactionType.BUY,
        asset: Optional[Instrument] = None,
    ) -> Position:
        total = sum(quantity for _, _, quantity in lots)
        cost = sum(Decimal(price) * quantity for _, price, quantity in lots)
        average = cost / total
        position = Position(
            position_id=f"{prefix}-pos",
            instrument=asset or instrument,
            direction=direction,
            total_quantity=total,
            remaining_quantity=total,
            average_price=average,
            open_date=lots[0][0],
        )
        store.add_position(position)
        for n, (entry_date, price, quantity) in enumerate(lots, start=1):
            store.add_entry_lot(
                EntryLot(
                    lot_id=f"{prefix}-lot-{n}",
                    position_id=position.position_id,
                    entry_date=entry_date,
                    unit_price=Decimal(price),
                    quantity=quantity,
                    remaining_quantity=quantity,
                    sequence_number=n,
                )
            )
        store.add_operation(
            Operation(
                operation_id=f"{prefix}-op",
                instrument=asset or instrument,
                transaction_type=direction,
                entry_date=lots[0][0],
                quantity=total,
                entry_unit_price=average,
            )
        )
        store.add_group(
            AverageOperationGroup(
                group_id=f"{prefix}-grp",
                position_id=position.position_id,
                creation_date=lots[0][0],
                operation_ids=[f"{prefix}-op"],
                total_quantity=total,
                remaining_quantity=total,
            )
        )
        return position

    return _build


@pytest.fixture
def two_lot_position(ledger_factory: Callable[..., Position]) -> Position:
    """10 units on Jan 1st at 10.00 and 5 units on Jan 3rd at 13.00 (average 11.00)."""
    return ledger_factory([(date(2024, 1, 1), "10.00", 10), (date(2024, 1, 3), "13.00", 5)])
