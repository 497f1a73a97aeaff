"""Version command - show infraplan version."""

import click
from ... import __version__


@click.command()
def version():
    """Show infraplan version."""
    click.echo(f"infraplan version {__version__}")
