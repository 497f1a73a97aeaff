"""Expand declarations into instances and build the resource graph."""

from typing import Any, Dict, List, Sequence, Tuple, Union
from ..ingest.expressions import (
    Index,
    Reference,
    format_address,
    iter_references,
    parse_address,
    parse_references,
    substitute,
)
from ..ingest.models import DeclarationSet, ResourceDeclaration
from ..utils.errors import DeclarationError, DuplicateIdentity, UnresolvedReference
from ..utils.logging import get_logger
from .dependency_graph import ResourceGraph
from .models import ResourceInstance

logger = get_logger("graph.builder")


def expand_declaration(declaration: ResourceDeclaration) -> List[Tuple[Index, Dict[str, Any]]]:
    """
    Expand a declaration's cardinality into (index, expression context) pairs.

    count=N gives indices 0..N-1; for_each gives its keys in the given order
    (list items are keyed by their own string value). A plain declaration
    gives a single unindexed instance.
    """
    if declaration.count is not None:
        return [(i, {"count": {"index": i}}) for i in range(declaration.count)]

    if declaration.for_each is not None:
        if isinstance(declaration.for_each, dict):
            items = [(str(key), value) for key, value in declaration.for_each.items()]
        else:
            items = []
            for value in declaration.for_each:
                if isinstance(value, (dict, list)):
                    raise DeclarationError(
                        f"{declaration.address}: for_each lists must contain scalars; use a mapping for structured values"
                    )
                items.append((str(value), value))
        seen = set()
        for key, _ in items:
            if key in seen:
                raise DuplicateIdentity(format_address(declaration.type, declaration.name, key))
            seen.add(key)
        return [(key, {"each": {"key": key, "value": value}}) for key, value in items]

    return [(None, {})]


class _Families:
    """Instance addresses per declaration address, used to resolve targets."""

    def __init__(self):
        self.members: Dict[str, List[str]] = {}
        self.expanded: Dict[str, bool] = {}
        self.known: set = set()

    def add_declaration(self, declaration: ResourceDeclaration) -> None:
        if declaration.address in self.members:
            raise DuplicateIdentity(declaration.address)
        self.members[declaration.address] = []
        self.expanded[declaration.address] = declaration.is_expanded

    def add_instance(self, family: str, address: str) -> None:
        self.members[family].append(address)
        self.known.add(address)

    def resolve(self, source: str, target: Any) -> List[str]:
        """Map a referenced address to instance addresses (a splat yields the whole family)."""
        if not isinstance(target, str):
            raise DeclarationError(f"{source}: depends_on entries must be addresses, got {target!r}")
        if target in self.known:
            return [target]

        resource_type, name, index = parse_address(target)
        family = format_address(resource_type, name)
        if family not in self.members:
            raise UnresolvedReference(source, target)
        if index is None and self.expanded[family]:
            return list(self.members[family])
        if index is not None and not self.expanded[family]:
            raise UnresolvedReference(source, target, f"{family} is not declared with count or for_each")
        raise UnresolvedReference(source, target, "no such instance after expansion")

    def expand_splats(self, source: str, value: Any) -> Any:
        """Replace unindexed references to counted declarations with one reference per instance."""
        if isinstance(value, Reference):
            targets = self.resolve(source, value.target)
            if targets == [value.target]:
                return value
            return [Reference(target=target, attribute=value.attribute) for target in targets]
        if isinstance(value, list):
            return [self.expand_splats(source, item) for item in value]
        if isinstance(value, dict):
            return {key: self.expand_splats(source, item) for key, item in value.items()}
        return value


def build_graph(declarations: Union[DeclarationSet, Sequence[ResourceDeclaration]]) -> ResourceGraph:
    """
    Build the resource graph from ordered declarations.

    Args:
        declarations: DeclarationSet or list of ResourceDeclaration

    Returns:
        ResourceGraph with one node per expanded instance

    Raises:
        DuplicateIdentity: Two instances (or declarations) share an identity
        UnresolvedReference: A reference or depends_on target does not exist
        DeclarationError: An expression is malformed
    """
    if isinstance(declarations, DeclarationSet):
        declarations = declarations.declarations

    families = _Families()
    prepared: List[Dict[str, Any]] = []

    for declaration in declarations:
        families.add_declaration(declaration)

        for index, context in expand_declaration(declaration):
            address = format_address(declaration.type, declaration.name, index)
            if address in families.known:
                raise DuplicateIdentity(address)
            attributes = substitute(declaration.attributes, context, address)
            depends_on = substitute(list(declaration.depends_on), context, address)
            families.add_instance(declaration.address, address)
            prepared.append({
                "address": address,
                "type": declaration.type,
                "name": declaration.name,
                "index": index,
                "attributes": parse_references(attributes, address),
                "depends_on": depends_on,
                "position": len(prepared),
            })

    graph = ResourceGraph()

    for item in prepared:
        address = item["address"]
        item["attributes"] = families.expand_splats(address, item["attributes"])

        dependencies: List[str] = []
        targets = [ref.target for ref in iter_references(item["attributes"])]
        for target in item.pop("depends_on"):
            targets.extend(families.resolve(address, target))
        for target in targets:
            if target not in dependencies:
                dependencies.append(target)

        graph.add_instance(ResourceInstance(dependencies=dependencies, **item))

    for instance in graph.instances():
        for dependency in instance.dependencies:
            graph.add_dependency(instance.address, dependency)

    logger.info(
        f"Built resource graph with {graph.graph.number_of_nodes()} instances "
        f"and {graph.graph.number_of_edges()} edges"
    )
    return graph
