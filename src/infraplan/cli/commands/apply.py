"""Apply and destroy commands - execute a plan against the provider."""

import json
import sys
from pathlib import Path
from typing import Optional
import click
from ... import compile_plan
from ...apply.executor import ApplyExecutor
from ...presentation.human_formatter import format_apply_result, format_plan
from ...providers.registry import SUPPORTED_PROVIDERS, create_provider
from ...report.artifact import generate_artifacts
from ...utils.logging import get_logger
from ..utils import (
    EXIT_OK,
    declaration_options,
    echo_text,
    exit_code_for,
    handle_errors,
    load_run_inputs,
)

logger = get_logger("cli.apply")


def apply_options(command):
    command = click.option('--quiet', is_flag=True, help='Suppress progress messages')(command)
    command = click.option('--artifacts', type=click.Path(file_okay=False), help='Write plan and apply_result artifacts to this directory')(command)
    command = click.option('--json', 'as_json', is_flag=True, help='Output structured JSON instead of human-readable')(command)
    command = click.option('--auto-approve', is_flag=True, help='Skip the interactive confirmation')(command)
    command = click.option('--parallelism', '-p', type=click.IntRange(min=1), help='Concurrent provider calls (default: engine.max_workers)')(command)
    command = click.option('--provider', 'provider_name', type=click.Choice(sorted(SUPPORTED_PROVIDERS)), help='Provider binding (default: provider.name)')(command)
    return command


def run_apply(
    declarations: str,
    variables,
    state_path: Optional[str],
    config_path: Optional[str],
    provider_name: Optional[str],
    parallelism: Optional[int],
    auto_approve: bool,
    as_json: bool,
    artifacts: Optional[str],
    quiet: bool,
    destroy: bool
) -> int:
    """Plan, confirm, execute, report. Returns the exit code."""
    config, declaration_set, store = load_run_inputs(declarations, variables, config_path, state_path)
    the_plan = compile_plan(declaration_set, store, config, destroy=destroy)

    if the_plan.is_empty:
        if as_json:
            click.echo(json.dumps({"plan": the_plan.render(), "result": None}, indent=2))
        else:
            click.echo("No changes. Infrastructure matches the declarations.")
        return EXIT_OK

    if not as_json and not quiet:
        echo_text(format_plan(the_plan))

    if not auto_approve:
        verb = "Destroy" if destroy else "Apply"
        click.confirm(f"{verb} {len(the_plan.actions)} action(s)?", abort=True, err=True)

    if provider_name:
        config.provider.name = provider_name
    provider = create_provider(config.provider)
    executor = ApplyExecutor(provider, store, max_workers=parallelism or config.engine.max_workers)
    result = executor.apply(the_plan)

    if as_json:
        click.echo(json.dumps({"plan": the_plan.render(), "result": result.model_dump()}, indent=2, default=str))
    else:
        echo_text(format_apply_result(result))

    if artifacts:
        generate_artifacts(the_plan, Path(artifacts), apply_result=result)
        if not quiet:
            click.echo(f"Artifacts written to: {artifacts}", err=True)

    return exit_code_for(result.outcome)


@click.command()
@declaration_options
@apply_options
@handle_errors("Apply")
def apply(declarations, variables, state_path, config_path, provider_name, parallelism,
          auto_approve, as_json, artifacts, quiet):
    """
    Plan DECLARATIONS and execute the actions.

    Exit codes: 0 applied (or nothing to do), 1 invalid input,
    2 partially applied, 3 failed, 130 cancelled.
    """
    sys.exit(run_apply(declarations, variables, state_path, config_path, provider_name, parallelism,
                       auto_approve, as_json, artifacts, quiet, destroy=False))


@click.command()
@declaration_options
@apply_options
@handle_errors("Destroy")
def destroy(declarations, variables, state_path, config_path, provider_name, parallelism,
            auto_approve, as_json, artifacts, quiet):
    """Destroy everything recorded in state for DECLARATIONS, dependents first."""
    sys.exit(run_apply(declarations, variables, state_path, config_path, provider_name, parallelism,
                       auto_approve, as_json, artifacts, quiet, destroy=True))
