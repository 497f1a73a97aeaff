"""Plan Engine: diff declarations against state into an ordered action list."""

import networkx as nx
from typing import Any, Dict, List, Optional, Sequence, Set
from ..graph.dependency_graph import ResourceGraph
from ..graph.models import ResourceInstance
from ..graph.resolver import stable_topological_sort
from ..ingest.expressions import Reference, parse_address
from ..ingest.models import ResourceTypeSchema
from ..state.models import StateRecord, StateSnapshot
from ..utils.errors import DeclarationError, StateCorruption, UnresolvedReference
from ..utils.logging import get_logger
from .models import ActionType, AttributeChange, Plan, PlanAction, PlanSummary
from .values import UNKNOWN, contains_unknown, resolve_value

logger = get_logger("planning.engine")

NOOP = "noop"
REPLACE = "replace"


class _Decision:
    """What the planner decided for one declared instance."""

    def __init__(self, kind: str, changed: Optional[Dict[str, Any]] = None,
                 changes: Optional[Dict[str, AttributeChange]] = None, reason: Optional[str] = None):
        self.kind = kind
        self.changed = changed or {}
        self.changes = changes or {}
        self.reason = reason


def create_plan(
    graph: ResourceGraph,
    order: Sequence[str],
    snapshot: StateSnapshot,
    resource_types: Optional[Dict[str, ResourceTypeSchema]] = None,
    strict_types: bool = False
) -> Plan:
    """
    Compute the ordered action list that reconciles declarations with state.

    Args:
        graph: Resource graph from build_graph
        order: Topological order from resolve_order
        snapshot: Current State Store snapshot
        resource_types: Per-type schemas (replace_on_change)
        strict_types: Treat state records of types neither declared nor in
            resource_types as corrupt

    Returns:
        Plan with create/update/destroy actions (NoOp omitted)

    Raises:
        StateCorruption: A state record cannot be interpreted
        UnresolvedReference: A reference reads an attribute the target never had
        CyclicDependency: The action graph cannot be ordered
    """
    resource_types = resource_types or {}
    _check_state(graph, snapshot, resource_types, strict_types)

    decisions: Dict[str, _Decision] = {}
    for address in order:
        instance = graph.get_instance(address)
        decisions[address] = _decide(instance, snapshot, decisions, resource_types)

    orphans = [address for address in snapshot.addresses() if address not in graph]

    actions = _build_actions(graph, order, snapshot, decisions, orphans)
    _link_actions(graph, snapshot, decisions, actions)
    ordered = _order_actions(order, snapshot, actions)

    summary = PlanSummary(
        create=sum(1 for a in ordered if a.action == ActionType.CREATE and not a.replacement),
        update=sum(1 for a in ordered if a.action == ActionType.UPDATE),
        destroy=sum(1 for a in ordered if a.action == ActionType.DESTROY and not a.replacement),
        replace=sum(1 for a in ordered if a.action == ActionType.DESTROY and a.replacement),
    )
    logger.info(
        f"Plan: {summary.create} to create, {summary.update} to update, "
        f"{summary.replace} to replace, {summary.destroy} to destroy"
    )
    return Plan(actions=ordered, summary=summary, state_serial=snapshot.serial)


def _check_state(
    graph: ResourceGraph,
    snapshot: StateSnapshot,
    resource_types: Dict[str, ResourceTypeSchema],
    strict_types: bool
) -> None:
    known_types = graph.types() | set(resource_types)
    for address, record in snapshot.records.items():
        try:
            resource_type, _, _ = parse_address(address)
        except DeclarationError:
            raise StateCorruption(f"State record '{address}' has an invalid address")
        if resource_type != record.resource_type:
            raise StateCorruption(
                f"State record '{address}' has resource type '{record.resource_type}' "
                f"but its address says '{resource_type}'"
            )
        if not record.provider_id:
            raise StateCorruption(f"State record '{address}' has no provider id")
        if strict_types and record.resource_type not in known_types:
            raise StateCorruption(
                f"State record '{address}' has type '{record.resource_type}', "
                "which no declaration or configured resource type describes"
            )


def _touches(attribute: str, changed: Dict[str, Any]) -> bool:
    return attribute.split(".")[0] in changed


def _planned_value(
    source: str,
    reference: Reference,
    snapshot: StateSnapshot,
    decisions: Dict[str, _Decision]
) -> Any:
    """Value a reference will have when the source is applied (UNKNOWN if not yet known)."""
    decision = decisions.get(reference.target)
    if decision is None:
        raise UnresolvedReference(source, reference.target, "target is not ordered before its dependent")
    if decision.kind in (ActionType.CREATE.value, REPLACE):
        return UNKNOWN
    if decision.kind == ActionType.UPDATE.value and _touches(reference.attribute, decision.changed):
        return UNKNOWN
    record = snapshot.get(reference.target)
    try:
        return record.lookup(reference.attribute)
    except KeyError:
        raise UnresolvedReference(
            source, reference.target, f"attribute '{reference.attribute}' is not known"
        )


def _decide(
    instance: ResourceInstance,
    snapshot: StateSnapshot,
    decisions: Dict[str, _Decision],
    resource_types: Dict[str, ResourceTypeSchema]
) -> _Decision:
    def lookup(reference: Reference) -> Any:
        return _planned_value(instance.address, reference, snapshot, decisions)

    desired = resolve_value(instance.attributes, lookup)
    record = snapshot.get(instance.address)

    if record is None:
        changes = {key: AttributeChange(before=None, after=value) for key, value in desired.items()}
        return _Decision(ActionType.CREATE.value, changed=desired, changes=changes, reason="not in state")

    changed: Dict[str, Any] = {}
    for key, value in desired.items():
        if contains_unknown(value) or record.attributes.get(key) != value:
            changed[key] = value
    for key, value in record.attributes.items():
        if key not in desired and value is not None:
            changed[key] = None

    if not changed:
        return _Decision(NOOP)

    schema = resource_types.get(instance.type)
    forcing = [key for key in changed if schema and key in schema.replace_on_change]
    if forcing:
        changes = {
            key: AttributeChange(before=record.attributes.get(key), after=desired.get(key))
            for key in list(desired) + [k for k in record.attributes if k not in desired]
        }
        return _Decision(REPLACE, changed=changed, changes=changes,
                         reason=f"{', '.join(forcing)} forces replacement")

    changes = {
        key: AttributeChange(before=record.attributes.get(key), after=changed[key])
        for key in changed
    }
    return _Decision(ActionType.UPDATE.value, changed=changed, changes=changes,
                     reason=f"{len(changed)} attribute(s) changed")


def _build_actions(
    graph: ResourceGraph,
    order: Sequence[str],
    snapshot: StateSnapshot,
    decisions: Dict[str, _Decision],
    orphans: List[str]
) -> Dict[str, PlanAction]:
    actions: Dict[str, PlanAction] = {}

    def add(action: PlanAction) -> None:
        actions[action.id] = action

    for address in order:
        decision = decisions[address]
        instance = graph.get_instance(address)
        record = snapshot.get(address)

        if decision.kind == NOOP:
            continue

        if decision.kind == REPLACE:
            add(PlanAction(
                id=PlanAction.make_id(address, ActionType.DESTROY.value),
                address=address,
                resource_type=instance.type,
                action=ActionType.DESTROY,
                provider_id=record.provider_id,
                dependencies=list(record.dependencies),
                replacement=True,
                reason=decision.reason,
            ))

        if decision.kind in (ActionType.CREATE.value, REPLACE):
            add(PlanAction(
                id=PlanAction.make_id(address, ActionType.CREATE.value),
                address=address,
                resource_type=instance.type,
                action=ActionType.CREATE,
                attributes=dict(instance.attributes),
                changes=decision.changes,
                dependencies=list(instance.dependencies),
                replacement=decision.kind == REPLACE,
                reason=decision.reason,
            ))
        elif decision.kind == ActionType.UPDATE.value:
            add(PlanAction(
                id=PlanAction.make_id(address, ActionType.UPDATE.value),
                address=address,
                resource_type=instance.type,
                action=ActionType.UPDATE,
                attributes={key: instance.attributes.get(key) for key in decision.changed},
                changes=decision.changes,
                provider_id=record.provider_id,
                dependencies=list(instance.dependencies),
                reason=decision.reason,
            ))

    for address in orphans:
        record = snapshot.get(address)
        add(PlanAction(
            id=PlanAction.make_id(address, ActionType.DESTROY.value),
            address=address,
            resource_type=record.resource_type,
            action=ActionType.DESTROY,
            provider_id=record.provider_id,
            dependencies=list(record.dependencies),
            reason="no longer declared",
        ))

    return actions


def _apply_action_id(address: str, decisions: Dict[str, _Decision]) -> Optional[str]:
    decision = decisions.get(address)
    if decision is None or decision.kind == NOOP:
        return None
    if decision.kind == ActionType.UPDATE.value:
        return PlanAction.make_id(address, ActionType.UPDATE.value)
    return PlanAction.make_id(address, ActionType.CREATE.value)


def _nearest_apply_actions(
    graph: ResourceGraph,
    address: str,
    decisions: Dict[str, _Decision],
    seen: Set[str]
) -> List[str]:
    """Create/update actions of the dependencies, looking through unchanged instances."""
    found: List[str] = []
    for dependency in graph.get_dependencies(address):
        if dependency in seen:
            continue
        seen.add(dependency)
        action_id = _apply_action_id(dependency, decisions)
        if action_id:
            found.append(action_id)
        else:
            found.extend(_nearest_apply_actions(graph, dependency, decisions, seen))
    return found


def _link_actions(
    graph: ResourceGraph,
    snapshot: StateSnapshot,
    decisions: Dict[str, _Decision],
    actions: Dict[str, PlanAction]
) -> None:
    """Fill in each action's prerequisite action ids."""
    recorded_dependents: Dict[str, List[str]] = {}
    for record in snapshot.records.values():
        for dependency in record.dependencies:
            recorded_dependents.setdefault(dependency, []).append(record.address)

    for action in actions.values():
        requires: List[str] = []

        if action.action in (ActionType.CREATE, ActionType.UPDATE):
            requires.extend(_nearest_apply_actions(graph, action.address, decisions, set()))
            if action.replacement:
                requires.append(PlanAction.make_id(action.address, ActionType.DESTROY.value))
        else:
            # Old instances come down in the reverse of the order they were built
            orphan = action.address not in graph
            for dependent in recorded_dependents.get(action.address, []):
                destroy_id = PlanAction.make_id(dependent, ActionType.DESTROY.value)
                update_id = PlanAction.make_id(dependent, ActionType.UPDATE.value)
                if destroy_id in actions:
                    requires.append(destroy_id)
                elif orphan and update_id in actions:
                    requires.append(update_id)

        action.requires = [r for i, r in enumerate(requires) if r not in requires[:i]]


def _order_actions(
    order: Sequence[str],
    snapshot: StateSnapshot,
    actions: Dict[str, PlanAction]
) -> List[PlanAction]:
    """Linearise the action graph: destroys seeded dependents-first, then creates/updates."""
    seeds: List[str] = []
    for address in reversed(snapshot.addresses()):
        action_id = PlanAction.make_id(address, ActionType.DESTROY.value)
        if action_id in actions:
            seeds.append(action_id)
    for address in order:
        for kind in (ActionType.CREATE.value, ActionType.UPDATE.value):
            action_id = PlanAction.make_id(address, kind)
            if action_id in actions:
                seeds.append(action_id)

    action_graph = nx.DiGraph()
    action_graph.add_nodes_from(seeds)
    for action in actions.values():
        for required in action.requires:
            action_graph.add_edge(action.id, required)

    return [actions[action_id] for action_id in stable_topological_sort(action_graph, seeds)]
