"""
Settlement events.

Each event is a frozen pydantic model checked against JSON Schema contracts
from lotledger.contracts when it is constructed: the envelope against
envelope.v1.json, the payload of a ValidatedEvent against
<SCHEMA_BASE>.v<event_version>.json. On the wire, timestamps are RFC3339 with
a Z suffix and decimals are plain strings.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar, Optional
from uuid import uuid4

import jsonschema
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from lotledger.contracts import load_and_compile_schema

ENVELOPE_SCHEMA = "envelope.v1.json"

# Envelope fields are stripped before the payload check
RESERVED_ENVELOPE_KEYS = frozenset(
    {"event_id", "event_type", "event_version", "occurred_at", "correlation_id", "causation_id", "source_service"}
)


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _check_contract(event: BaseModel, schema_file: str, part: str, data: dict[str, Any]) -> None:
    try:
        load_and_compile_schema(schema_file).validate(data)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ValueError(
            f"{type(event).__name__} {part} validation failed against {schema_file} at {location}: {exc.message}"
        ) from None


class BaseEvent(BaseModel):
    """Envelope shared by every event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str = "base"
    event_version: int = 1
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None
    source_service: str = "lotledger"

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _as_utc(cls, value: Any) -> datetime:
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if not isinstance(value, datetime):
            raise ValueError(f"occurred_at must be a datetime or ISO string, got {type(value).__name__}")
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer("occurred_at")
    def _dump_occurred_at(self, value: datetime) -> str:
        return _rfc3339(value)

    @model_validator(mode="after")
    def _validate_envelope(self) -> "BaseEvent":
        envelope = {key: getattr(self, key) for key in RESERVED_ENVELOPE_KEYS}
        envelope["occurred_at"] = _rfc3339(self.occurred_at)
        # Optional envelope fields are omitted rather than sent as null
        envelope = {key: value for key, value in envelope.items() if value is not None}
        _check_contract(self, ENVELOPE_SCHEMA, "envelope", envelope)
        return self


class ValidatedEvent(BaseEvent):
    """
    Event with a payload contract.

    Subclasses set SCHEMA_BASE (e.g. "settlement/exit_settled") and an
    event_type equal to its last path segment.
    """

    SCHEMA_BASE: ClassVar[Optional[str]] = None

    @model_validator(mode="after")
    def _validate_payload(self) -> "ValidatedEvent":
        name = type(self).__name__
        if self.SCHEMA_BASE is None:
            raise ValueError(f"{name} must specify SCHEMA_BASE")
        contract_name = self.SCHEMA_BASE.rsplit("/", 1)[-1]
        if self.event_type != contract_name:
            raise ValueError(f"{name}.event_type '{self.event_type}' must equal contract name '{contract_name}'")

        schema_file = f"{self.SCHEMA_BASE}.v{self.event_version}.json"
        payload = {k: v for k, v in self.model_dump().items() if k not in RESERVED_ENVELOPE_KEYS}
        try:
            _check_contract(self, schema_file, "payload", payload)
        except FileNotFoundError as exc:
            raise ValueError(f"{name}: Schema not found: {schema_file}") from exc
        return self


class ExitSettledEvent(ValidatedEvent):
    """
    A committed exit, published once per settle() call after the commit.

    operation_id is the active entry operation the exit was requested
    against; exit_operation_id is the operation the exit created.
    exit_record_ids lists one record per consumed lot in consumption order.
    profit_loss_percentage is a ratio against the exit's entry value.
    """

    SCHEMA_BASE: ClassVar[Optional[str]] = "settlement/exit_settled"
    event_type: str = "exit_settled"

    position_id: str
    operation_id: str
    exit_operation_id: str
    asset_code: str
    strategy: str
    quantity: int
    exit_date: str
    exit_unit_price: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Decimal
    exit_record_ids: list[str]
    remaining_quantity: int
    position_status: str
    sequence_number: int

    @field_serializer("exit_unit_price", "profit_loss", "profit_loss_percentage")
    def _dump_decimal(self, value: Decimal) -> str:
        return format(value, "f")


class PositionClosedEvent(ValidatedEvent):
    """The position's remaining quantity reached zero."""

    SCHEMA_BASE: ClassVar[Optional[str]] = "settlement/position_closed"
    event_type: str = "position_closed"

    position_id: str
    asset_code: str
    direction: str
    close_date: str
    total_quantity: int
    total_realized_profit: Decimal
    total_realized_profit_percentage: Decimal

    @field_serializer("total_realized_profit", "total_realized_profit_percentage")
    def _dump_decimal(self, value: Decimal) -> str:
        return format(value, "f")
