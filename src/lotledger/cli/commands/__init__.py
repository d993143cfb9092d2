"""Commands __init__ - exports all commands."""

from lotledger.cli.commands.settle import settle_command
from lotledger.cli.commands.show import show_command

__all__ = ["settle_command", "show_command"]
