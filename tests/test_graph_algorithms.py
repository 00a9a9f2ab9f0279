"""Tests for cycle detection and topological ordering."""

import random

import pytest

from dependency.algorithms import (
    cycles,
    is_cyclic,
    reverse_topological_order,
    strongly_connected_components,
    topological_order,
)
from errors import CircularDependencyError
from mods.identity import Mod

from factories import make_graph


class TestStronglyConnectedComponents:
    """Test Tarjan's algorithm over required edges."""

    def test_two_node_cycle(self):
        """A requires B requires A forms one component."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, ["a"]),
        )
        assert is_cyclic(graph)
        components = strongly_connected_components(graph)
        assert {frozenset(c) for c in components} == {frozenset({Mod("a"), Mod("b")})}

    def test_three_node_cycle_in_traversal_order(self):
        """Cycle members are listed in the order they were visited."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, ["c"]),
            ("c", "1.0.0", True, ["a"]),
        )
        assert cycles(graph) == [[Mod("a"), Mod("b"), Mod("c")]]

    def test_acyclic_graph(self):
        """A chain has only singleton components."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, ["c"]),
            ("c", "1.0.0", True, []),
        )
        assert not is_cyclic(graph)
        assert all(len(c) == 1 for c in strongly_connected_components(graph))

    def test_non_required_edges_do_not_form_cycles(self):
        """Optional and incompatible edges are ignored."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, ["? a", "! a", "~ a", "(?) a"]),
        )
        assert not is_cyclic(graph)

    def test_self_dependency_is_not_a_cycle(self):
        """Components of size one never count as cycles."""
        graph = make_graph(("a", "1.0.0", True, ["a"]))
        assert not is_cyclic(graph)

    def test_restricted_to_subset(self):
        """Only the given nodes take part when a subset is passed."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", False, ["a"]),
        )
        assert cycles(graph, [Mod("a")]) == []
        assert len(cycles(graph)) == 1

    def test_deep_chain_does_not_recurse(self):
        """Long chains are handled without hitting the recursion limit."""
        n = 5000
        specs = [(f"m{i}", "1.0.0", True, [f"m{i + 1}"]) for i in range(n)]
        specs.append((f"m{n}", "1.0.0", True, []))
        graph = make_graph(*specs)
        assert not is_cyclic(graph)
        assert topological_order(graph)[0] == Mod(f"m{n}")


class TestTopologicalOrder:
    """Test dependency-first ordering."""

    def test_dependencies_come_first(self):
        """For every required edge X -> Y, Y precedes X."""
        rng = random.Random(7)
        names = [f"m{i}" for i in range(40)]
        specs = []
        for i, name in enumerate(names):
            deps = [names[j] for j in range(i + 1, len(names)) if rng.random() < 0.15]
            specs.append((name, "1.0.0", True, deps))
        rng.shuffle(specs)
        graph = make_graph(*specs)

        order = topological_order(graph)
        assert len(order) == len(names)
        position = {mod: i for i, mod in enumerate(order)}
        for edge in graph.edges():
            if edge.is_required:
                assert position[edge.to_mod] < position[edge.from_mod]

    def test_ignores_missing_targets(self):
        """Edges to unknown MODs impose no order."""
        graph = make_graph(("a", "1.0.0", True, ["ghost"]))
        assert topological_order(graph) == [Mod("a")]

    def test_reverse_order(self):
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, []),
        )
        assert reverse_topological_order(graph) == [Mod("a"), Mod("b")]

    def test_raises_on_cycle(self):
        """Ordering a cyclic graph is an error naming the members."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b"]),
            ("b", "1.0.0", True, ["a"]),
        )
        with pytest.raises(CircularDependencyError) as excinfo:
            topological_order(graph)
        assert excinfo.value.cycles == [["a", "b"]]
        assert "a -> b" in str(excinfo.value)

    def test_graph_wrappers(self):
        """Graph methods delegate to the algorithms."""
        graph = make_graph(("a", "1.0.0", True, ["b"]), ("b", "1.0.0", True, []))
        assert graph.topological_order() == [Mod("b"), Mod("a")]
        assert not graph.is_cyclic()
        assert len(graph.strongly_connected_components()) == 2
