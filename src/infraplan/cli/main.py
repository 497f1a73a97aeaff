"""Main CLI entry point for infraplan."""

import logging
import click
from .commands.plan import plan
from .commands.apply import apply, destroy
from .commands.graph import graph
from .commands.state import state
from .commands.version import version as version_command
from ..utils.logging import get_logger, set_log_level
from .. import __version__

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="infraplan", message="%(prog)s version %(version)s")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose):
    """infraplan - Plan and apply declarative infrastructure."""
    if verbose:
        set_log_level(logging.DEBUG)


cli.add_command(plan)
cli.add_command(apply)
cli.add_command(destroy)
cli.add_command(graph)
cli.add_command(state)
cli.add_command(version_command)
