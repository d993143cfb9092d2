"""CLI UI components - rich table formatters."""

from lotledger.cli.ui.formatters import (
    create_audit_table,
    create_exit_records_table,
    create_lots_table,
    create_position_table,
    create_positions_table,
    create_settlement_summary_table,
)

__all__ = [
    "create_audit_table",
    "create_exit_records_table",
    "create_lots_table",
    "create_position_table",
    "create_positions_table",
    "create_settlement_summary_table",
]
