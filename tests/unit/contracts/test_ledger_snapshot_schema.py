"""
Unit tests for the ledger snapshot and settlement JSON Schema contracts.

Tests the schemas directly (no models involved) to ensure:
- Every shipped schema is itself a valid Draft 2020-12 schema
- Required fields and enums are enforced
- Decimals accept plain decimal strings only
"""

import copy

import jsonschema
import pytest

from lotledger.contracts import load_and_compile_schema

SHIPPED_SCHEMAS = [
    "envelope.v1.json",
    "settlement/exit_settled.v1.json",
    "settlement/position_closed.v1.json",
    "ledger/snapshot.v1.json",
]


@pytest.fixture
def snapshot_document() -> dict:
    return {
        "schema_version": 1,
        "positions": [
            {
                "position_id": "pos-1",
                "instrument": {"asset_code": "PETR4"},
                "direction": "BUY",
                "total_quantity": 10,
                "remaining_quantity": 10,
                "average_price": "10.00",
                "open_date": "2024-01-01",
            }
        ],
        "entry_lots": [
            {
                "lot_id": "lot-1",
                "position_id": "pos-1",
                "entry_date": "2024-01-01",
                "unit_price": "10.00",
                "quantity": 10,
                "remaining_quantity": 10,
            }
        ],
        "operations": [
            {
                "operation_id": "op-1",
                "instrument": {"asset_code": "PETR4"},
                "transaction_type": "BUY",
                "entry_date": "2024-01-01",
                "quantity": 10,
                "entry_unit_price": "10.00",
            }
        ],
        "groups": [
            {"group_id": "grp-1", "position_id": "pos-1", "creation_date": "2024-01-01", "operation_ids": ["op-1"]}
        ],
    }


class TestSchemaLoading:
    @pytest.mark.parametrize("schema_name", SHIPPED_SCHEMAS)
    def test_shipped_schemas_compile(self, schema_name: str) -> None:
        validator = load_and_compile_schema(schema_name)

        assert validator.schema["$schema"] == "https://json-schema.org/draft/2020-12/schema"

    def test_validators_are_cached(self) -> None:
        assert load_and_compile_schema("envelope.v1.json") is load_and_compile_schema("envelope.v1.json")

    def test_missing_schema(self) -> None:
        with pytest.raises(FileNotFoundError, match="lotledger.contracts.schemas"):
            load_and_compile_schema("ledger/missing.v1.json")


class TestSnapshotSchema:
    """Test the ledger snapshot contract."""

    def test_minimal_document_valid(self, snapshot_document: dict) -> None:
        load_and_compile_schema("ledger/snapshot.v1.json").validate(snapshot_document)

    @pytest.mark.parametrize("section", ["positions", "entry_lots", "operations", "groups"])
    def test_required_sections(self, snapshot_document: dict, section: str) -> None:
        del snapshot_document[section]

        with pytest.raises(jsonschema.ValidationError, match=section):
            load_and_compile_schema("ledger/snapshot.v1.json").validate(snapshot_document)

    @pytest.mark.parametrize(
        "section,field,value",
        [
            ("positions", "average_price", "ten"),
            ("positions", "status", "OPENED"),
            ("positions", "open_date", "01/01/2024"),
            ("entry_lots", "quantity", 0),
            ("entry_lots", "remaining_quantity", -1),
            ("operations", "transaction_type", "LONG"),
            ("operations", "status", "CLOSED"),
            ("groups", "operation_ids", ["op-1", "op-1"]),
        ],
    )
    def test_invalid_values_rejected(self, snapshot_document: dict, section: str, field: str, value) -> None:
        document = copy.deepcopy(snapshot_document)
        document[section][0][field] = value

        with pytest.raises(jsonschema.ValidationError):
            load_and_compile_schema("ledger/snapshot.v1.json").validate(document)

    def test_wrong_schema_version(self, snapshot_document: dict) -> None:
        snapshot_document["schema_version"] = 2

        with pytest.raises(jsonschema.ValidationError):
            load_and_compile_schema("ledger/snapshot.v1.json").validate(snapshot_document)

    def test_exit_record_strategy_is_lifo_only(self, snapshot_document: dict) -> None:
        snapshot_document["exit_records"] = [
            {
                "exit_record_id": "rec-1",
                "entry_lot_id": "lot-1",
                "exit_operation_id": "op-2",
                "exit_date": "2024-01-02",
                "quantity": 1,
                "entry_unit_price": "10.00",
                "exit_unit_price": "11.00",
                "profit_loss": "1.00",
                "profit_loss_percentage": "0.10",
                "applied_strategy": "FIFO",
            }
        ]

        with pytest.raises(jsonschema.ValidationError, match="LIFO"):
            load_and_compile_schema("ledger/snapshot.v1.json").validate(snapshot_document)
