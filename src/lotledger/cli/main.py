"""LotLedger CLI main entry point."""

import click

from lotledger import __version__
from lotledger.cli.commands import settle_command, show_command


@click.group()
@click.version_option(version=__version__)
def main():
    """LotLedger - Entry-lot position accounting"""
    pass


main.add_command(settle_command)
main.add_command(show_command)


if __name__ == "__main__":
    main()
