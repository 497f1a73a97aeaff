"""Plan command - show what apply would do, without mutating anything."""

import json
from pathlib import Path
import click
from ... import compile_plan
from ...presentation.human_formatter import format_plan
from ...report.artifact import generate_artifacts
from ...utils.logging import get_logger
from ..utils import declaration_options, handle_errors, load_run_inputs, write_output

logger = get_logger("cli.plan")


@click.command()
@declaration_options
@click.option('--destroy', is_flag=True, help='Plan the destruction of everything in state')
@click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@click.option('--artifacts', type=click.Path(file_okay=False), help='Write plan.json, summary.json and metadata.json to this directory')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
@handle_errors("Plan")
def plan(declarations, variables, state_path, config_path, destroy, as_json, output, artifacts, quiet):
    """
    Compute the ordered create/update/destroy actions for DECLARATIONS.

    Reads state but never calls the provider or writes state.
    """
    if not quiet:
        click.echo(f"Loading declarations: {declarations}", err=True)

    config, declaration_set, store = load_run_inputs(declarations, variables, config_path, state_path)
    the_plan = compile_plan(declaration_set, store, config, destroy=destroy)

    if as_json:
        text = json.dumps(the_plan.render(), indent=2, default=str) + "\n"
    else:
        text = format_plan(the_plan)
    write_output(text, output, quiet)

    if artifacts:
        generate_artifacts(the_plan, Path(artifacts))
        if not quiet:
            click.echo(f"Artifacts written to: {artifacts}", err=True)
