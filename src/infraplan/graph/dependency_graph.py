"""Directed resource graph: nodes=instances, edges=dependencies."""

import networkx as nx
from typing import Dict, Iterator, List, Optional, Set
from .models import ResourceInstance
from ..utils.errors import DuplicateIdentity
from ..utils.logging import get_logger

logger = get_logger("graph.dependency_graph")


class ResourceGraph:
    """
    Directed dependency graph over resource instances.

    Edges point from a dependent instance to the instance it references.
    """

    def __init__(self):
        self.graph = nx.DiGraph()
        self._instances: Dict[str, ResourceInstance] = {}

    def add_instance(self, instance: ResourceInstance) -> None:
        """Add an instance node. Raises DuplicateIdentity if the address exists."""
        if instance.address in self._instances:
            raise DuplicateIdentity(instance.address)
        self.graph.add_node(instance.address, instance=instance)
        self._instances[instance.address] = instance

    def add_dependency(self, address: str, dependency: str) -> None:
        """Add edge address -> dependency. Both nodes must already exist."""
        self.graph.add_edge(address, dependency)
        logger.debug(f"Added dependency edge: {address} -> {dependency}")

    def get_instance(self, address: str) -> Optional[ResourceInstance]:
        """Get instance by address."""
        return self._instances.get(address)

    def instances(self) -> List[ResourceInstance]:
        """All instances in declaration order."""
        return sorted(self._instances.values(), key=lambda i: i.position)

    def addresses(self) -> List[str]:
        return [instance.address for instance in self.instances()]

    def types(self) -> Set[str]:
        return {instance.type for instance in self._instances.values()}

    def position(self, address: str) -> int:
        return self._instances[address].position

    def get_dependencies(self, address: str) -> List[str]:
        """Direct dependencies of an instance, in declaration order."""
        if address not in self.graph:
            return []
        return sorted(self.graph.successors(address), key=self.position)

    def __contains__(self, address: str) -> bool:
        return address in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[ResourceInstance]:
        return iter(self.instances())
