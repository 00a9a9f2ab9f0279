"""Tests for the dependency graph structure."""

import pytest

from dependency.graph import Edge, Graph, GraphError, Node, Operation
from mods.identity import Mod
from versioning.parser import DependencyKind

from factories import add_mod, make_graph, make_mod_info, make_release, v


class TestGraphStructure:
    """Test node and edge bookkeeping."""

    def test_rejects_duplicate_node(self):
        """One node per MOD identity."""
        graph = Graph()
        add_mod(graph, "a")
        with pytest.raises(GraphError):
            graph.add_node(Node(Mod("a"), v("2.0.0")))

    def test_rejects_edge_from_unknown_node(self):
        """Edges need an existing source node."""
        graph = Graph()
        with pytest.raises(GraphError):
            graph.add_edge(Edge(Mod("a"), Mod("b"), DependencyKind.REQUIRED))

    def test_allows_dangling_edge(self):
        """Edge targets may be unknown."""
        graph = make_graph(("a", "1.0.0", True, ["missing"]))
        assert graph.edges_from(Mod("a"))[0].to_mod == Mod("missing")
        assert graph.edges_to(Mod("missing"))[0].from_mod == Mod("a")
        assert not graph.has_node(Mod("missing"))

    def test_indexes_both_directions(self):
        """Forward and reverse indexes agree."""
        graph = make_graph(
            ("a", "1.0.0", True, ["b", "! c"]),
            ("b", "1.0.0", True, []),
            ("c", "1.0.0", False, []),
        )
        assert [e.to_mod.name for e in graph.edges_from(Mod("a"))] == ["b", "c"]
        assert [e.from_mod.name for e in graph.edges_to(Mod("b"))] == ["a"]
        assert graph.edges_to(Mod("c"))[0].is_incompatible

    def test_incompatibilities_cover_both_directions(self):
        """Incompatibility lookup sees declarations on either side."""
        graph = make_graph(
            ("a", "1.0.0", True, ["! c"]),
            ("c", "1.0.0", True, []),
        )
        assert len(graph.incompatibilities(Mod("a"))) == 1
        assert len(graph.incompatibilities(Mod("c"))) == 1

    def test_set_node_operation(self):
        """Operation defaults to NONE and can be changed."""
        graph = make_graph(("a", "1.0.0", False, []))
        assert graph.node(Mod("a")).operation is Operation.NONE
        graph.set_node_operation(Mod("a"), Operation.ENABLE)
        assert graph.node(Mod("a")).operation is Operation.ENABLE

    def test_set_node_operation_unknown(self):
        with pytest.raises(GraphError):
            Graph().set_node_operation(Mod("a"), Operation.ENABLE)


class TestFindEnabledDependents:
    """Test reverse lookup of enabled dependents."""

    def test_returns_enabled_required_dependents_only(self):
        """Disabled and optional dependents are ignored."""
        graph = make_graph(
            ("lib", "1.0.0", True, []),
            ("a", "1.0.0", True, ["lib"]),
            ("b", "1.0.0", False, ["lib"]),
            ("c", "1.0.0", True, ["? lib"]),
            ("d", "1.0.0", True, ["lib >= 1.0.0"]),
        )
        assert [n.mod.name for n in graph.find_enabled_dependents(Mod("lib"))] == ["a", "d"]

    def test_no_dependents(self):
        graph = make_graph(("lib", "1.0.0", True, []))
        assert graph.find_enabled_dependents(Mod("lib")) == []


class TestAddUninstalledMod:
    """Test speculative nodes added during install planning."""

    def test_adds_node_and_edges(self):
        """Node is uninstalled, disabled, tagged, and carries every manifest edge."""
        graph = Graph()
        info = make_mod_info("new", make_release("new", "1.0.0", ["base >= 2.0", "lib", "? extra"]))
        assert graph.add_uninstalled_mod(info, info.releases[0]) is True

        node = graph.node(Mod("new"))
        assert not node.installed
        assert not node.enabled
        assert node.operation is Operation.INSTALL
        assert node.version == v("1.0.0")
        assert [e.to_mod.name for e in graph.edges_from(Mod("new"))] == ["base", "lib", "extra"]

    def test_skips_existing_node(self):
        """An existing node is left untouched."""
        graph = make_graph(("lib", "1.0.0", True, []))
        info = make_mod_info("lib", make_release("lib", "2.0.0", ["other"]))
        assert graph.add_uninstalled_mod(info, info.releases[0]) is False
        assert graph.node(Mod("lib")).version == v("1.0.0")
        assert graph.edges_from(Mod("lib")) == []
