"""CLI utilities package."""

import functools
import sys
from pathlib import Path
from typing import Optional, Tuple
import click
from ...apply.models import ApplyOutcome
from ...config import EngineConfig, load_engine_config
from ...ingest.declaration_loader import load_declarations, parse_var_assignments
from ...ingest.models import DeclarationSet
from ...state.store import FileStateStore
from ... import open_state
from ...utils.errors import InfraPlanError
from ...utils.logging import get_logger
from .file_resolver import resolve_declaration_path

logger = get_logger("cli.utils")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_FAILED = 3
EXIT_CANCELLED = 130

_OUTCOME_EXIT_CODES = {
    ApplyOutcome.APPLIED.value: EXIT_OK,
    ApplyOutcome.PARTIALLY_APPLIED.value: EXIT_PARTIAL,
    ApplyOutcome.FAILED.value: EXIT_FAILED,
    ApplyOutcome.CANCELLED.value: EXIT_CANCELLED,
}


def exit_code_for(outcome: str) -> int:
    """Map an apply outcome to the process exit code."""
    return _OUTCOME_EXIT_CODES[outcome]


def format_error(message: str, suggestion: Optional[str] = None) -> str:
    """
    Format error message with optional suggestion.

    Args:
        message: Error message
        suggestion: Optional suggestion or help text

    Returns:
        Formatted error string
    """
    error = f"Error: {message}"
    if suggestion:
        error += f"\nTip: {suggestion}"
    return error


def state_options(command):
    """--state and --config, shared by every command that reads state."""
    command = click.option('--config', 'config_path', type=click.Path(), help='Config YAML layered over the defaults')(command)
    command = click.option('--state', 'state_path', type=click.Path(), help='State file (default: engine.state_path)')(command)
    return command


def declaration_options(command):
    """DECLARATIONS argument plus --var, --state and --config."""
    command = state_options(command)
    command = click.option('--var', 'variables', multiple=True, metavar='NAME=VALUE', help='Set a variable (repeatable)')(command)
    command = click.argument('declarations', type=click.Path(exists=False))(command)
    return command


def load_run_inputs(
    declarations: str,
    variables: Tuple[str, ...],
    config_path: Optional[str],
    state_path: Optional[str]
) -> Tuple[EngineConfig, DeclarationSet, FileStateStore]:
    """
    Shared loading helper - every declaration command calls this.

    Raises:
        InfraPlanError: If the declarations, config or state cannot be loaded
    """
    try:
        declaration_path = resolve_declaration_path(declarations)
    except FileNotFoundError as e:
        raise InfraPlanError(str(e))

    config = load_engine_config(config_path)
    declaration_set = load_declarations(str(declaration_path), parse_var_assignments(list(variables)))
    store = open_state(config, state_path)
    return config, declaration_set, store


def echo_text(text: str) -> None:
    """Echo, falling back to ASCII on terminals that cannot encode the output."""
    try:
        click.echo(text, nl=False)
    except UnicodeEncodeError:
        click.echo(text.encode('ascii', errors='replace').decode('ascii'), nl=False)


def write_output(text: str, output: Optional[str], quiet: bool) -> None:
    """Write text to a file when output is given, otherwise to stdout."""
    if not output:
        echo_text(text)
        return
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(text)
    if not quiet:
        click.echo(f"Output saved to: {output_path}", err=True)


def handle_errors(name: str):
    """Turn InfraPlanError into a formatted message and exit 1; log anything unexpected."""
    def decorator(command):
        @functools.wraps(command)
        def wrapper(*args, **kwargs):
            try:
                return command(*args, **kwargs)
            except InfraPlanError as e:
                click.echo(format_error(str(e)), err=True)
                sys.exit(EXIT_ERROR)
            except click.exceptions.ClickException:
                raise
            except click.exceptions.Abort:
                raise
            except Exception as e:
                logger.error(f"Unexpected error: {e}", exc_info=True)
                click.echo(format_error(f"{name} failed: {e}"), err=True)
                sys.exit(EXIT_ERROR)
        return wrapper
    return decorator


__all__ = [
    "EXIT_OK",
    "EXIT_ERROR",
    "EXIT_PARTIAL",
    "EXIT_FAILED",
    "EXIT_CANCELLED",
    "exit_code_for",
    "format_error",
    "state_options",
    "declaration_options",
    "load_run_inputs",
    "echo_text",
    "write_output",
    "handle_errors",
    "resolve_declaration_path",
]
