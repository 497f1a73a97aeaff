"""Graph command - show the resolved dependency order."""

import json
import click
from ...graph.builder import build_graph
from ...graph.resolver import resolve_order
from ...presentation.human_formatter import format_graph
from ..utils import declaration_options, echo_text, handle_errors, load_run_inputs


@click.command()
@declaration_options
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON')
@handle_errors("Graph")
def graph(declarations, variables, state_path, config_path, as_json):
    """Print the instances of DECLARATIONS in dependency order."""
    _, declaration_set, _ = load_run_inputs(declarations, variables, config_path, state_path)
    resource_graph = build_graph(declaration_set)
    order = resolve_order(resource_graph)

    if as_json:
        data = {
            "order": order,
            "dependencies": {address: resource_graph.get_dependencies(address) for address in order},
        }
        click.echo(json.dumps(data, indent=2))
    else:
        echo_text(format_graph(resource_graph, order))
