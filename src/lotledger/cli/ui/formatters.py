"""Rich table formatters for CLI output."""

from decimal import Decimal
from typing import Optional

from rich.table import Table

from lotledger.services.ledger.models import EntryLot, ExitRecord, Position, PositionOperation
from lotledger.services.settlement.models import SettlementResult


def _money(value: Optional[Decimal]) -> str:
    return "-" if value is None else f"{value:,.2f}"


def _pnl(value: Decimal) -> str:
    """Color a P&L figure by sign."""
    if value > 0:
        return f"[green]{_money(value)}[/green]"
    if value < 0:
        return f"[red]{_money(value)}[/red]"
    return f"[yellow]{_money(value)}[/yellow]"


def _percent(ratio: Decimal) -> str:
    return f"{ratio * 100:.2f}%"


def create_positions_table(positions: list[Position]) -> Table:
    """One row per position in the ledger."""
    table = Table(title="Positions")
    table.add_column("Position", style="cyan", no_wrap=True)
    table.add_column("Asset", style="magenta")
    table.add_column("Side", style="white")
    table.add_column("Remaining", style="yellow", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Status", style="white")
    table.add_column("Realized", justify="right")

    for position in sorted(positions, key=lambda p: (p.instrument.asset_code, p.open_date)):
        table.add_row(
            position.position_id,
            position.instrument.asset_code,
            "LONG" if position.direction.value == "BUY" else "SHORT",
            f"{position.remaining_quantity:,}",
            f"{position.total_quantity:,}",
            _money(position.average_price),
            position.status.value,
            _pnl(position.total_realized_profit),
        )
    return table


def create_position_table(position: Position) -> Table:
    """
    Field/value view of a single position.

    Args:
        position: Position to display

    Returns:
        Configured Rich Table
    """
    table = Table(title=f"Position {position.instrument.asset_code}")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("ID", position.position_id)
    table.add_row("Direction", position.direction.value)
    table.add_row("Status", position.status.value)
    table.add_row("Remaining / Total", f"{position.remaining_quantity:,} / {position.total_quantity:,}")
    table.add_row("Average Price", _money(position.average_price))
    table.add_row("Opened", position.open_date.isoformat())
    table.add_row("Closed", position.close_date.isoformat() if position.close_date else "-")
    table.add_row("Realized P&L", _pnl(position.total_realized_profit))
    table.add_row("Realized %", _percent(position.total_realized_profit_percentage))
    table.add_row("Version", str(position.version))
    return table


def create_lots_table(lots: list[EntryLot]) -> Table:
    """Entry lots, oldest first."""
    table = Table(title="Entry Lots")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Lot", style="cyan", no_wrap=True)
    table.add_column("Date", style="white")
    table.add_column("Unit Price", justify="right")
    table.add_column("Quantity", justify="right")
    table.add_column("Remaining", style="yellow", justify="right")
    table.add_column("Consumed", style="white")

    for lot in lots:
        table.add_row(
            str(lot.sequence_number),
            lot.lot_id,
            lot.entry_date.isoformat(),
            _money(lot.unit_price),
            f"{lot.quantity:,}",
            f"{lot.remaining_quantity:,}",
            "[dim]yes[/dim]" if lot.fully_consumed else "no",
        )
    return table


def create_exit_records_table(records: list[ExitRecord]) -> Table:
    table = Table(title="Exit Records")
    table.add_column("Date", style="white")
    table.add_column("Lot", style="cyan", no_wrap=True)
    table.add_column("Qty", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Strategy", style="dim")

    for record in records:
        table.add_row(
            record.exit_date.isoformat(),
            record.entry_lot_id,
            f"{record.quantity:,}",
            _money(record.entry_unit_price),
            _money(record.exit_unit_price),
            _pnl(record.profit_loss),
            _percent(record.profit_loss_percentage),
            record.applied_strategy.value,
        )
    return table


def create_audit_table(entries: list[PositionOperation]) -> Table:
    table = Table(title="Position History")
    table.add_column("Seq", style="dim", justify="right")
    table.add_column("Type", style="magenta")
    table.add_column("Operation", style="cyan", no_wrap=True)
    table.add_column("Timestamp", style="white")

    for entry in entries:
        table.add_row(str(entry.sequence_number), entry.type.value, entry.operation_id, entry.timestamp.isoformat())
    return table


def create_settlement_summary_table(result: SettlementResult) -> Table:
    """Summary of one committed settlement."""
    table = Table(title="Settlement")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Strategy", result.strategy.value)
    table.add_row("Quantity", f"{result.quantity:,}")
    table.add_row("Exit Operation", result.exit_operation.operation_id)
    table.add_row("Trade Type", result.exit_operation.trade_type.value)
    table.add_row("Result", result.exit_operation.status.value)
    table.add_row("P&L", _pnl(result.profit_loss))
    table.add_row("P&L %", _percent(result.profit_loss_percentage))
    table.add_row("Lots Consumed", str(len(result.exit_records)))
    table.add_row("Position Remaining", f"{result.position.remaining_quantity:,}")
    table.add_row("Position Status", result.position.status.value)
    table.add_row("Audit Sequence", str(result.position_operation.sequence_number))
    return table
