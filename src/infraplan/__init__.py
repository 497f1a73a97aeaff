"""infraplan - Declarative resource orchestrator: plan and apply layered infrastructure."""

from typing import Any, Dict, Optional
from .apply.executor import ApplyExecutor
from .apply.models import ApplyResult
from .config import EngineConfig, load_engine_config
from .graph.builder import build_graph
from .graph.resolver import resolve_order
from .ingest.declaration_loader import load_declarations
from .ingest.models import DeclarationSet
from .planning.engine import create_plan
from .planning.models import Plan
from .providers.base import Provider
from .providers.registry import create_provider
from .state.store import FileStateStore, StateStore
from .utils.logging import setup_logging, get_logger
from .utils.errors import InfraPlanError

__version__ = "0.1.0"

__all__ = ["plan", "apply", "compile_plan", "open_state"]

setup_logging()
logger = get_logger("api")


def open_state(config: EngineConfig, state_path: Optional[str] = None) -> FileStateStore:
    """Open the file state store at state_path or the configured location."""
    return FileStateStore(state_path or config.engine.state_path)


def compile_plan(
    declarations: DeclarationSet,
    state_store: StateStore,
    config: EngineConfig,
    destroy: bool = False
) -> Plan:
    """
    Builder -> Resolver -> Plan Engine against the store's current snapshot.

    Args:
        declarations: Loaded declaration set
        state_store: Store holding last-applied state
        config: Engine configuration (resource-type rules, strictness)
        destroy: Plan the destruction of everything in state instead

    Returns:
        Plan (empty when nothing changes)
    """
    resource_types = config.with_resource_types(declarations.resource_types)
    graph = build_graph([] if destroy else declarations.declarations)
    order = resolve_order(graph)
    snapshot = state_store.snapshot()
    return create_plan(graph, order, snapshot, resource_types=resource_types, strict_types=config.strict_types)


def plan(
    declaration_path: str,
    variables: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
    state_path: Optional[str] = None,
    destroy: bool = False
) -> Plan:
    """Load declarations and state and compute the plan. Nothing is mutated."""
    try:
        logger.info(f"Planning declarations: {declaration_path}")
        config = load_engine_config(config_path)
        declarations = load_declarations(declaration_path, variables)
        store = open_state(config, state_path)
        return compile_plan(declarations, store, config, destroy=destroy)
    except InfraPlanError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during plan: {e}", exc_info=True)
        raise InfraPlanError(f"Plan failed: {e}") from e


def apply(
    declaration_path: str,
    variables: Optional[Dict[str, Any]] = None,
    config_path: Optional[str] = None,
    state_path: Optional[str] = None,
    provider: Optional[Provider] = None,
    max_workers: Optional[int] = None,
    destroy: bool = False
) -> ApplyResult:
    """
    Plan and apply in one step.

    Args:
        declaration_path: Declaration YAML file
        variables: Variable overrides
        config_path: Optional config file
        state_path: State file (default: engine.state_path)
        provider: Provider instance (default: the configured provider)
        max_workers: Concurrent provider calls (default: engine.max_workers)
        destroy: Destroy everything in state instead

    Returns:
        ApplyResult. Build/resolve errors raise before any provider call.
    """
    try:
        config = load_engine_config(config_path)
        declarations = load_declarations(declaration_path, variables)
        store = open_state(config, state_path)
        the_plan = compile_plan(declarations, store, config, destroy=destroy)
        if provider is None:
            provider = create_provider(config.provider)
        executor = ApplyExecutor(provider, store, max_workers=max_workers or config.engine.max_workers)
        return executor.apply(the_plan)
    except InfraPlanError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during apply: {e}", exc_info=True)
        raise InfraPlanError(f"Apply failed: {e}") from e
