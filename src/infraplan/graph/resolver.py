"""Topologically order the resource graph (dependencies first)."""

import networkx as nx
from typing import Dict, Hashable, List, Sequence
from ..utils.errors import CyclicDependency
from ..utils.logging import get_logger
from .dependency_graph import ResourceGraph

logger = get_logger("graph.resolver")

_WHITE, _GREY, _BLACK = 0, 1, 2


def stable_topological_sort(graph: nx.DiGraph, order: Sequence[Hashable]) -> List[Hashable]:
    """
    Order nodes so every edge target (a prerequisite) precedes its source.

    Depth-first with three colours. Roots are walked in the given order and a
    node's prerequisites are visited by their position in that order, so nodes
    with no constraint between them keep their relative order.

    Args:
        graph: DiGraph with edges dependent -> prerequisite
        order: Every node of the graph, in preferred order

    Returns:
        Total order of the nodes

    Raises:
        CyclicDependency: A back edge to an in-progress node was found
    """
    position: Dict[Hashable, int] = {node: i for i, node in enumerate(order)}
    colour: Dict[Hashable, int] = {node: _WHITE for node in order}
    result: List[Hashable] = []

    def prerequisites(node):
        return iter(sorted(graph.successors(node), key=lambda n: position.get(n, len(position))))

    for root in order:
        if colour[root] != _WHITE:
            continue
        colour[root] = _GREY
        path = [root]
        stack = [prerequisites(root)]
        while stack:
            advanced = False
            for nxt in stack[-1]:
                state = colour.get(nxt, _WHITE)
                if state == _GREY:
                    cycle = path[path.index(nxt):] + [nxt]
                    raise CyclicDependency([str(node) for node in cycle])
                if state == _WHITE:
                    colour[nxt] = _GREY
                    path.append(nxt)
                    stack.append(prerequisites(nxt))
                    advanced = True
                    break
            if not advanced:
                stack.pop()
                done = path.pop()
                colour[done] = _BLACK
                result.append(done)

    return result


def resolve_order(graph: ResourceGraph) -> List[str]:
    """Total order over instances consistent with every reference edge."""
    order = stable_topological_sort(graph.graph, graph.addresses())
    logger.info(f"Resolved apply order for {len(order)} instances")
    logger.debug(f"Apply order: {', '.join(order)}")
    return order
