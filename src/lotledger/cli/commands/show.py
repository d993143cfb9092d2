"""Ledger inspection command."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from lotledger.cli.ui.formatters import (
    create_audit_table,
    create_exit_records_table,
    create_lots_table,
    create_position_table,
    create_positions_table,
)
from lotledger.services.ledger import load_snapshot

console = Console()


@click.command("show")
@click.option(
    "--ledger",
    "-l",
    "ledger_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Ledger snapshot file (YAML or JSON)",
)
@click.option("--position", "-p", "position_id", help="Position to detail (omit to list all positions)")
def show_command(ledger_file: Path, position_id: Optional[str]):
    """
    Display positions, lots and settlement history.

    \b
    Examples:
        lotledger show -l ledger.yaml
        lotledger show -l ledger.yaml -p pos-1
    """
    try:
        store = load_snapshot(ledger_file)
    except ValueError as e:
        console.print(f"[bold red]✗ Invalid ledger:[/bold red] {e}")
        sys.exit(2)

    if position_id is None:
        console.print(create_positions_table(store.list_positions()))
        return

    position = store.get_position(position_id)
    if position is None:
        console.print(f"[bold red]✗ Position not found:[/bold red] {position_id}")
        sys.exit(1)

    console.print(create_position_table(position))
    console.print(create_lots_table(store.list_entry_lots(position_id)))
    records = store.list_exit_records(position_id)
    if records:
        console.print(create_exit_records_table(records))
    entries = store.list_position_operations(position_id)
    if entries:
        console.print(create_audit_table(entries))
