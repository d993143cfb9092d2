"""Data models for the position ledger.

Defines the entities the settlement core reads and writes:
- Instrument: read-only reference data for the traded asset
- Position: aggregate root for a standing holding in one instrument
- EntryLot: one batch of acquired quantity at a fixed price and date
- ExitRecord: immutable fact linking one lot consumption to one exit
- Operation: a single buy/sell event
- AverageOperationGroup: operations sharing one weighted-average cost basis
- PositionOperation: append-only audit entry on a position

Mutable entities (Position, EntryLot, Operation, AverageOperationGroup) are
only mutated by the services in lotledger.services. ExitRecord and
PositionOperation are frozen: the trails they form are insert-only.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _new_id() -> str:
    return str(uuid4())


class TransactionType(str, Enum):
    """Direction of an operation. BUY opens long exposure, SELL opens short."""

    BUY = "BUY"
    SELL = "SELL"


class TradeType(str, Enum):
    """Holding-period classification."""

    DAY = "DAY"
    SWING = "SWING"


class AssetType(str, Enum):
    STOCK = "STOCK"
    ETF = "ETF"
    REIT = "REIT"
    OPTION = "OPTION"


class PositionStatus(str, Enum):
    OPEN = "OPEN"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    CLOSED = "CLOSED"


class OperationStatus(str, Enum):
    """Lifecycle of an operation.

    Entry operations start ACTIVE. Exit operations are born with their result
    (WINNER, LOSER, NEUTRAL). HIDDEN marks an entry operation consolidated
    into its exit results.
    """

    ACTIVE = "ACTIVE"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    WINNER = "WINNER"
    LOSER = "LOSER"
    NEUTRAL = "NEUTRAL"
    HIDDEN = "HIDDEN"
    CANCELED = "CANCELED"


class GroupStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    CLOSED = "CLOSED"


class PositionOperationType(str, Enum):
    OPEN = "OPEN"
    INCREASE = "INCREASE"
    PARTIAL_EXIT = "PARTIAL_EXIT"
    FULL_EXIT = "FULL_EXIT"


class ExitStrategy(str, Enum):
    """Lot consumption policy applied to a settlement."""

    LIFO = "LIFO"  # most recently entered lot first


class Instrument(BaseModel):
    """
    Reference data for a traded asset.

    Supplied by the asset-resolution collaborator; the settlement core only
    reads it.

    Example:
        >>> Instrument(asset_code="PETR4", name="Petrobras PN", asset_type=AssetType.STOCK)
    """

    asset_code: str
    name: str = ""
    logo_url: Optional[str] = None
    asset_type: AssetType = AssetType.STOCK

    model_config = ConfigDict(frozen=True)


class Position(BaseModel):
    """
    Aggregate root for a standing holding in one instrument.

    Invariants (kept by the settlement services):
    - remaining_quantity == sum of its lots' remaining_quantity
    - status == CLOSED iff remaining_quantity == 0
    - close_date is set only on the transition to CLOSED

    Attributes:
        position_id: Unique identifier
        instrument: Traded asset
        direction: BUY for long positions, SELL for short positions
        total_quantity: Quantity ever opened
        remaining_quantity: Quantity still held
        average_price: Weighted-average entry price of the opened quantity
        status: OPEN, PARTIALLY_CLOSED or CLOSED
        open_date: Date of the first acquisition
        close_date: Date of the final settlement (None until CLOSED)
        total_realized_profit: Cumulative realized P&L
        total_realized_profit_percentage: Cumulative P&L over the original cost basis
        version: Revision counter, bumped on every committed change
    """

    position_id: str = Field(default_factory=_new_id)
    instrument: Instrument
    direction: TransactionType = TransactionType.BUY
    total_quantity: int
    remaining_quantity: int
    average_price: Decimal
    status: PositionStatus = PositionStatus.OPEN
    open_date: date
    close_date: Optional[date] = None
    total_realized_profit: Decimal = Decimal("0")
    total_realized_profit_percentage: Decimal = Decimal("0")
    version: int = 0

    @field_validator("total_quantity", "remaining_quantity")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Quantity cannot be negative, got {v}")
        return v

    @model_validator(mode="after")
    def validate_remaining(self) -> "Position":
        if self.remaining_quantity > self.total_quantity:
            raise ValueError(
                f"remaining_quantity ({self.remaining_quantity}) exceeds total_quantity ({self.total_quantity})"
            )
        if (self.status == PositionStatus.CLOSED) != (self.remaining_quantity == 0):
            raise ValueError(
                f"status {self.status.value} inconsistent with remaining_quantity {self.remaining_quantity}: "
                "a position is CLOSED exactly when nothing remains"
            )
        return self

    @property
    def is_closed(self) -> bool:
        return self.status == PositionStatus.CLOSED

    @property
    def cost_basis(self) -> Decimal:
        """Original invested value: average price times opened quantity."""
        return self.average_price * self.total_quantity


class EntryLot(BaseModel):
    """
    One batch of acquired quantity at a fixed unit price and date.

    Belongs to exactly one position. Consumed by exits until fully_consumed.

    Attributes:
        lot_id: Unique identifier
        position_id: Owning position
        entry_date: Acquisition date
        unit_price: Price per unit paid
        quantity: Original quantity
        remaining_quantity: Quantity not yet consumed by exits
        sequence_number: Order of entry within the position (tie-break for equal dates)
        fully_consumed: True once remaining_quantity reaches zero
    """

    lot_id: str = Field(default_factory=_new_id)
    position_id: str
    entry_date: date
    unit_price: Decimal
    quantity: int
    remaining_quantity: int
    sequence_number: int = 1
    fully_consumed: bool = False

    @field_validator("unit_price")
    @classmethod
    def validate_unit_price(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"Unit price must be positive, got {v}")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Lot quantity must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def validate_remaining(self) -> "EntryLot":
        if not 0 <= self.remaining_quantity <= self.quantity:
            raise ValueError(f"remaining_quantity must be within [0, {self.quantity}], got {self.remaining_quantity}")
        if self.fully_consumed != (self.remaining_quantity == 0):
            raise ValueError("fully_consumed must be True exactly when remaining_quantity is 0")
        return self

    @property
    def total_value(self) -> Decimal:
        return self.unit_price * self.quantity


class ExitRecord(BaseModel):
    """
    Immutable settlement fact: one lot consumption by one exit operation.

    Never updated or deleted once created.
    """

    exit_record_id: str = Field(default_factory=_new_id)
    entry_lot_id: str
    exit_operation_id: str
    exit_date: date
    quantity: int
    entry_unit_price: Decimal  # Snapshot at settlement time
    exit_unit_price: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Decimal
    applied_strategy: ExitStrategy = ExitStrategy.LIFO

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Exit record quantity must be positive, got {v}")
        return v

    model_config = ConfigDict(frozen=True)


class Operation(BaseModel):
    """
    A single buy/sell event.

    Entry operations carry the averaged entry side of a position; exit
    operations are created by settlement and carry the realized result.
    """

    operation_id: str = Field(default_factory=_new_id)
    instrument: Instrument
    transaction_type: TransactionType
    trade_type: TradeType = TradeType.SWING
    entry_date: date
    exit_date: Optional[date] = None
    status: OperationStatus = OperationStatus.ACTIVE
    quantity: int
    entry_unit_price: Decimal
    entry_total_value: Optional[Decimal] = None
    exit_unit_price: Optional[Decimal] = None
    exit_total_value: Optional[Decimal] = None
    profit_loss: Optional[Decimal] = None
    profit_loss_percentage: Optional[Decimal] = None

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Operation quantity cannot be negative, got {v}")
        return v

    @model_validator(mode="after")
    def fill_entry_total_value(self) -> "Operation":
        if self.entry_total_value is None:
            self.entry_total_value = self.entry_unit_price * self.quantity
        return self


class AverageOperationGroup(BaseModel):
    """
    Operations sharing one weighted-average cost basis for a position.

    Every settled operation belongs to exactly one group.
    """

    group_id: str = Field(default_factory=_new_id)
    position_id: str
    creation_date: date
    status: GroupStatus = GroupStatus.ACTIVE
    operation_ids: list[str] = Field(default_factory=list)
    total_quantity: int = 0
    remaining_quantity: int = 0
    closed_quantity: int = 0
    total_profit: Decimal = Decimal("0")
    notes: Optional[str] = None


class PositionOperation(BaseModel):
    """
    Append-only audit entry on a position.

    sequence_number is per position, starts at 1 and is never reused.
    """

    position_operation_id: str = Field(default_factory=_new_id)
    position_id: str
    operation_id: str
    type: PositionOperationType
    timestamp: datetime
    sequence_number: int

    @field_validator("sequence_number")
    @classmethod
    def validate_sequence(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"sequence_number starts at 1, got {v}")
        return v

    model_config = ConfigDict(frozen=True)
