"""Dependency graph of MODs.

Nodes are MOD identities (installed, or speculative nodes added while
planning an install); edges are parsed dependency entries. Both edge
directions are indexed so dependents can be found without a scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from dependency import algorithms
from errors import ModgateError
from mods.identity import Mod
from versioning.models import ModVersion, VersionRequirement, requirement_satisfied
from versioning.parser import DependencyEntry, DependencyKind

logger = logging.getLogger(__name__)


class Operation(Enum):
    """Planned change attached to a node."""
    NONE = "none"
    INSTALL = "install"
    ENABLE = "enable"


@dataclass
class Node:
    """State of one MOD identity in the graph."""
    mod: Mod
    version: ModVersion
    enabled: bool = False
    installed: bool = True
    operation: Operation = Operation.NONE

    def __str__(self) -> str:
        return f"{self.mod}@{self.version}"


@dataclass(frozen=True)
class Edge:
    """A dependency of ``from_mod`` on ``to_mod``."""
    from_mod: Mod
    to_mod: Mod
    kind: DependencyKind
    requirement: Optional[VersionRequirement] = None

    @property
    def is_required(self) -> bool:
        return self.kind is DependencyKind.REQUIRED

    @property
    def is_incompatible(self) -> bool:
        return self.kind is DependencyKind.INCOMPATIBLE

    def satisfied_by(self, version: ModVersion) -> bool:
        return requirement_satisfied(self.requirement, version)

    @classmethod
    def from_entry(cls, owner: Mod, entry: DependencyEntry) -> "Edge":
        return cls(owner, entry.target, entry.kind, entry.requirement)


class GraphError(ModgateError):
    """Structural misuse of the graph (duplicate node, edge from unknown node)."""


@dataclass
class Graph:
    """MOD dependency graph with forward and reverse edge indexes."""
    _nodes: Dict[Mod, Node] = field(default_factory=dict)
    _edges_from: Dict[Mod, List[Edge]] = field(default_factory=dict)
    _edges_to: Dict[Mod, List[Edge]] = field(default_factory=dict)

    # Queries

    def __contains__(self, mod: Mod) -> bool:
        return mod in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def has_node(self, mod: Mod) -> bool:
        return mod in self._nodes

    def node(self, mod: Mod) -> Optional[Node]:
        return self._nodes.get(mod)

    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def edges_from(self, mod: Mod) -> List[Edge]:
        return list(self._edges_from.get(mod, ()))

    def edges_to(self, mod: Mod) -> List[Edge]:
        return list(self._edges_to.get(mod, ()))

    def edges(self) -> List[Edge]:
        return [e for edges in self._edges_from.values() for e in edges]

    def required_dependencies(self, mod: Mod) -> List[Edge]:
        return [e for e in self._edges_from.get(mod, ()) if e.is_required]

    def incompatibilities(self, mod: Mod) -> List[Edge]:
        """Incompatibility edges touching ``mod`` in either direction."""
        outgoing = [e for e in self._edges_from.get(mod, ()) if e.is_incompatible]
        incoming = [e for e in self._edges_to.get(mod, ()) if e.is_incompatible]
        return outgoing + incoming

    def find_enabled_dependents(self, mod: Mod) -> List[Node]:
        """Enabled nodes holding a required edge to ``mod``."""
        result: List[Node] = []
        seen = set()
        for edge in self._edges_to.get(mod, ()):
            if not edge.is_required or edge.from_mod in seen:
                continue
            node = self._nodes.get(edge.from_mod)
            if node is not None and node.enabled:
                seen.add(edge.from_mod)
                result.append(node)
        return result

    # Mutation

    def add_node(self, node: Node) -> None:
        if node.mod in self._nodes:
            raise GraphError(f"Node already exists: {node.mod}", context={"mod": node.mod.name})
        self._nodes[node.mod] = node

    def add_edge(self, edge: Edge) -> None:
        if edge.from_mod not in self._nodes:
            raise GraphError(
                f"Cannot add edge from unknown node: {edge.from_mod}", context={"mod": edge.from_mod.name}
            )
        self._edges_from.setdefault(edge.from_mod, []).append(edge)
        self._edges_to.setdefault(edge.to_mod, []).append(edge)

    def add_entries(self, owner: Mod, entries: List[DependencyEntry]) -> None:
        for entry in entries:
            self.add_edge(Edge.from_entry(owner, entry))

    def add_uninstalled_mod(self, mod_info, release, operation: Operation = Operation.INSTALL) -> bool:
        """Add a speculative node for a registry release.

        Args:
            mod_info: Registry metadata (``registry.models.ModInfo``).
            release: The selected ``registry.models.Release``.
            operation: Planned operation for the new node.

        Returns:
            True if a node was added, False if the MOD already had one.
        """
        mod = mod_info.mod
        if mod in self._nodes:
            return False
        self.add_node(Node(mod, release.version, enabled=False, installed=False, operation=operation))
        self.add_entries(mod, release.dependencies(owner=mod.name))
        logger.debug("Added speculative node %s@%s (%s)", mod, release.version, operation.value)
        return True

    def set_node_operation(self, mod: Mod, operation: Operation) -> None:
        node = self._nodes.get(mod)
        if node is None:
            raise GraphError(f"Unknown node: {mod}", context={"mod": mod.name})
        node.operation = operation

    # Algorithms

    def strongly_connected_components(self) -> List[List[Mod]]:
        return algorithms.strongly_connected_components(self)

    def is_cyclic(self) -> bool:
        return algorithms.is_cyclic(self)

    def topological_order(self) -> List[Mod]:
        return algorithms.topological_order(self)
