"""Request, context and result types for exit settlement."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from lotledger.services.ledger.models import (
    AverageOperationGroup,
    EntryLot,
    ExitRecord,
    Operation,
    Position,
    PositionOperation,
    TransactionType,
)


class ExitStrategyKind(str, Enum):
    """Settlement algorithm chosen for an exit."""

    TOTAL = "TOTAL"
    PARTIAL = "PARTIAL"


class ExitRequest(BaseModel):
    """
    Disposal request against an active entry operation.

    Attributes:
        operation_id: Active operation being exited
        quantity: Units to dispose of (positive)
        exit_date: Date of the disposal
        exit_unit_price: Price per unit received (positive)
        correlation_id: Optional id propagated to published events
    """

    operation_id: str
    quantity: int
    exit_date: date
    exit_unit_price: Decimal
    correlation_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Exit quantity must be positive, got {v}")
        return v

    @field_validator("exit_unit_price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"Exit unit price must be positive, got {v}")
        return v


@dataclass
class ExitContext:
    """The active operation being exited, paired with the disposal request."""

    active_operation: Operation
    request: ExitRequest


@dataclass
class ExitPositionContext:
    """Everything a strategy needs to settle one exit."""

    context: ExitContext
    group: AverageOperationGroup
    position: Position
    inverse_transaction_type: TransactionType
    available_lots: list[EntryLot]

    @property
    def available_quantity(self) -> int:
        return sum(lot.remaining_quantity for lot in self.available_lots)


@dataclass
class StrategyOutcome:
    """What a strategy produced: the exit operation and one record per consumed lot."""

    exit_operation: Operation
    exit_records: list[ExitRecord]
    profit_loss: Decimal
    profit_loss_percentage: Decimal


class SettlementResult(BaseModel):
    """
    Committed outcome of one exit.

    Attributes:
        position: Position after the exit (version already bumped)
        active_operation: Entry operation after its status change
        exit_operation: Exit operation created by the settlement
        group: Average operation group after roll-up
        exit_records: Records in consumption order (most recent lot first)
        position_operation: Audit entry appended for the exit
        strategy: TOTAL or PARTIAL
        quantity: Settled quantity
        profit_loss: Realized P&L for the settled quantity
        profit_loss_percentage: P&L ratio against the settled entry value
    """

    position: Position
    active_operation: Operation
    exit_operation: Operation
    group: AverageOperationGroup
    exit_records: list[ExitRecord]
    position_operation: PositionOperation
    strategy: ExitStrategyKind
    quantity: int
    profit_loss: Decimal
    profit_loss_percentage: Decimal

    model_config = ConfigDict(frozen=True)

    @property
    def position_closed(self) -> bool:
        return self.position.is_closed
