"""State commands - inspect last-applied records."""

import json
import click
from ...config import load_engine_config
from ...presentation.human_formatter import format_record, format_state
from ...utils.errors import InfraPlanError
from ... import open_state
from ..utils import echo_text, handle_errors, state_options


@click.group()
def state():
    """Inspect the state store."""
    pass


@state.command(name="list")
@state_options
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
@handle_errors("State list")
def list_records(state_path, config_path, as_json):
    """List every recorded instance with its provider id."""
    store = open_state(load_engine_config(config_path), state_path)
    records = store.list()
    if as_json:
        click.echo(json.dumps([record.model_dump() for record in records], indent=2, default=str))
    else:
        echo_text(format_state(records))


@state.command(name="show")
@click.argument('address')
@state_options
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
@handle_errors("State show")
def show_record(address, state_path, config_path, as_json):
    """Show the recorded attributes and outputs of ADDRESS."""
    store = open_state(load_engine_config(config_path), state_path)
    record = store.get(address)
    if record is None:
        known = [r.address for r in store.list()]
        suggestion = f" Recorded instances: {', '.join(known[:10])}" if known else ""
        raise InfraPlanError(f"No state recorded for '{address}'.{suggestion}")
    if as_json:
        click.echo(json.dumps(record.model_dump(), indent=2, default=str))
    else:
        echo_text(format_record(record))
