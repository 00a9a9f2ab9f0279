"""Cycle detection and ordering over required edges.

Only required edges take part; optional, hidden, load-neutral and
incompatibility edges never create ordering constraints. Edges to MODs
without a node are ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from errors import CircularDependencyError
from mods.identity import Mod

if TYPE_CHECKING:
    from dependency.graph import Graph


def _successor_fn(graph: "Graph", members: Set[Mod]) -> Callable[[Mod], List[Mod]]:
    def successors(mod: Mod) -> List[Mod]:
        return [e.to_mod for e in graph.edges_from(mod) if e.is_required and e.to_mod in members]
    return successors


def strongly_connected_components(graph: "Graph", nodes: Optional[Iterable[Mod]] = None) -> List[List[Mod]]:
    """Tarjan's algorithm with an explicit work stack.

    Args:
        graph: The dependency graph.
        nodes: Restrict the search to these MODs (default: every node).

    Returns:
        All components, singletons included. Components come out
        dependency-first and each lists its members in traversal order.
    """
    members = list(nodes) if nodes is not None else [n.mod for n in graph.nodes()]
    successors = _successor_fn(graph, set(members))

    index: Dict[Mod, int] = {}
    lowlink: Dict[Mod, int] = {}
    on_stack: Set[Mod] = set()
    stack: List[Mod] = []
    components: List[List[Mod]] = []
    counter = 0

    for root in members:
        if root in index:
            continue
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work: List[Tuple[Mod, Iterator[Mod]]] = [(root, iter(successors(root)))]

        while work:
            mod, pending = work[-1]
            descended = False
            for succ in pending:
                if succ not in index:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, iter(successors(succ))))
                    descended = True
                    break
                if succ in on_stack:
                    lowlink[mod] = min(lowlink[mod], index[succ])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[mod])
            if lowlink[mod] == index[mod]:
                component: List[Mod] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == mod:
                        break
                component.reverse()
                components.append(component)

    return components


def cycles(graph: "Graph", nodes: Optional[Iterable[Mod]] = None) -> List[List[Mod]]:
    """Components with more than one member."""
    return [c for c in strongly_connected_components(graph, nodes) if len(c) > 1]


def is_cyclic(graph: "Graph") -> bool:
    return bool(cycles(graph))


def topological_order(graph: "Graph") -> List[Mod]:
    """Every node, each dependency before its dependents.

    Raises:
        CircularDependencyError: if the required-edge subgraph has a cycle.
    """
    components = strongly_connected_components(graph)
    found = [c for c in components if len(c) > 1]
    if found:
        raise CircularDependencyError([[m.name for m in c] for c in found])
    return [c[0] for c in components]


def reverse_topological_order(graph: "Graph") -> List[Mod]:
    """Every node, each dependent before its dependencies."""
    return list(reversed(topological_order(graph)))
