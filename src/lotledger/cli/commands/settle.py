"""Exit settlement command."""

import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Literal, Optional, cast

import click
from rich.console import Console

from lotledger.cli.ui.formatters import create_exit_records_table, create_settlement_summary_table
from lotledger.errors import LedgerError
from lotledger.events import EventBus
from lotledger.services.ledger import load_snapshot, save_snapshot
from lotledger.services.settlement import ExitRequest, ExitSettlementService
from lotledger.system import LoggerFactory, reload_system_config

console = Console()


def _parse_price(ctx: click.Context, param: click.Parameter, value: str) -> Decimal:
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise click.BadParameter(f"not a decimal number: {value}")
    if not price.is_finite() or price <= 0:
        raise click.BadParameter(f"must be a positive number, got {value}")
    return price


@click.command("settle")
@click.option(
    "--ledger",
    "-l",
    "ledger_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Ledger snapshot file (YAML or JSON)",
)
@click.option("--operation", "-o", "operation_id", required=True, help="Active operation to exit")
@click.option("--quantity", "-q", type=click.IntRange(min=1), required=True, help="Units to exit")
@click.option("--price", "-p", callback=_parse_price, required=True, help="Exit unit price")
@click.option(
    "--date",
    "-d",
    "exit_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="Exit date (YYYY-MM-DD)",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the updated snapshot here instead of overwriting --ledger",
)
@click.option("--dry-run", is_flag=True, help="Settle in memory only; do not write the snapshot")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level (DEBUG shows lot consumption details)",
)
def settle_command(
    ledger_file: Path,
    operation_id: str,
    quantity: int,
    price: Decimal,
    exit_date: datetime,
    output: Optional[Path],
    dry_run: bool,
    log_level: Optional[str],
):
    """
    Settle an exit against a ledger snapshot.

    Consumes the position's entry lots most-recent-first, records the
    settlement and writes the snapshot back.

    \b
    Examples:
        # Sell 5 units of operation op-1 at 12.00
        lotledger settle -l ledger.yaml -o op-1 -q 5 -p 12.00 -d 2024-01-03

        # Preview without touching the file
        lotledger settle -l ledger.yaml -o op-1 -q 5 -p 12.00 -d 2024-01-03 --dry-run
    """
    system_config = reload_system_config()
    if log_level:
        system_config.logging.level = cast(Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], log_level.upper())
    LoggerFactory.configure(system_config.logging.to_logger_config())

    try:
        store = load_snapshot(ledger_file)
        bus = EventBus(display_events=["*"] if system_config.logging.enable_event_display else None)
        service = ExitSettlementService(store, event_bus=bus, config=system_config.settlement)

        result = service.settle(
            ExitRequest(
                operation_id=operation_id,
                quantity=quantity,
                exit_date=exit_date.date(),
                exit_unit_price=price,
            )
        )

        console.print()
        console.print(create_settlement_summary_table(result))
        console.print(create_exit_records_table(result.exit_records))

        if dry_run:
            console.print("[dim]Dry run: snapshot not written[/dim]")
        else:
            target = output or ledger_file
            save_snapshot(store, target)
            console.print(f"[bold green]✓ Settled[/bold green] ledger written to [cyan]{target}[/cyan]")

    except LedgerError as e:
        console.print(f"[bold red]✗ Exit rejected:[/bold red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[bold red]✗ Invalid input:[/bold red] {e}")
        sys.exit(2)
