"""Tests for the uninstall planner."""

import pytest

from dependency.graph import Graph
from errors import DependentsBlockError, InvalidTargetError
from mods.identity import Mod
from planning.uninstall import plan_uninstall
from versioning.parser import ModSpec, parse_mod_spec

from factories import add_mod, make_artifact, v


@pytest.fixture
def two_versions():
    """X installed at 1.0.0 and 2.0.0; enabled Y requires X >= 2.0.0."""
    graph = Graph()
    add_mod(graph, "X", "2.0.0", True)
    add_mod(graph, "Y", "1.0.0", True, ["X >= 2.0.0"])
    installed = [
        make_artifact("X", "2.0.0"),
        make_artifact("X", "1.0.0"),
        make_artifact("Y", "1.0.0", ["X >= 2.0.0"]),
    ]
    return graph, installed


class TestPlanUninstall:
    """Test version-aware dependent checks."""

    def test_removing_unneeded_version(self, two_versions):
        """Dropping 1.0.0 leaves 2.0.0, which still satisfies Y."""
        graph, installed = two_versions
        plan = plan_uninstall(graph, installed, [parse_mod_spec("X@1.0.0")])
        assert [(a.mod.name, str(a.version)) for a in plan.artifacts] == [("X", "1.0.0")]
        assert plan.remove_from_list == []

    def test_removing_needed_version_is_blocked(self, two_versions):
        graph, installed = two_versions
        with pytest.raises(DependentsBlockError) as excinfo:
            plan_uninstall(graph, installed, [parse_mod_spec("X@2.0.0")])
        assert excinfo.value.dependents == ["Y"]
        assert str(excinfo.value) == (
            "Cannot uninstall X@2.0.0: the following enabled MODs depend on it: Y"
        )

    def test_removing_every_version_is_blocked(self, two_versions):
        graph, installed = two_versions
        with pytest.raises(DependentsBlockError, match="Cannot uninstall X:"):
            plan_uninstall(graph, installed, [ModSpec(Mod("X"))])

    def test_dependent_removed_in_same_plan(self, two_versions):
        """A dependent being removed entirely does not block."""
        graph, installed = two_versions
        plan = plan_uninstall(graph, installed, [ModSpec(Mod("X")), ModSpec(Mod("Y"))])
        assert len(plan.artifacts) == 3
        assert plan.remove_from_list == [Mod("X"), Mod("Y")]

    def test_reports_every_blocking_dependent(self):
        graph = Graph()
        add_mod(graph, "lib")
        add_mod(graph, "a", deps=["lib"])
        add_mod(graph, "b", deps=["lib"])
        add_mod(graph, "c", enabled=False, deps=["lib"])
        installed = [make_artifact(n, "1.0.0") for n in ("lib", "a", "b", "c")]
        with pytest.raises(DependentsBlockError) as excinfo:
            plan_uninstall(graph, installed, [ModSpec(Mod("lib"))])
        assert excinfo.value.dependents == ["a", "b"]

    def test_not_installed_is_skipped(self, two_versions):
        graph, installed = two_versions
        assert plan_uninstall(graph, installed, [ModSpec(Mod("ghost"))]).is_empty
        assert plan_uninstall(graph, installed, [ModSpec(Mod("X"), v("9.0.0"))]).is_empty

    @pytest.mark.parametrize("name", ["base", "space-age", "quality", "elevated-rails"])
    def test_builtin_targets_are_rejected(self, two_versions, name):
        graph, installed = two_versions
        with pytest.raises(InvalidTargetError):
            plan_uninstall(graph, installed, [ModSpec(Mod(name))])

    def test_all_removes_dependents_first(self):
        """--all removes non-builtin MODs and only disables expansions."""
        graph = Graph()
        add_mod(graph, "base", "2.0.0")
        add_mod(graph, "space-age", "2.0.0", deps=["base"])
        add_mod(graph, "quality", "2.0.0", enabled=False)
        add_mod(graph, "a", deps=["b"])
        add_mod(graph, "b")
        installed = [make_artifact("a", "1.0.0"), make_artifact("b", "1.0.0")]

        plan = plan_uninstall(graph, installed, all_mods=True)
        assert [a.mod.name for a in plan.artifacts] == ["a", "b"]
        assert plan.remove_from_list == [Mod("a"), Mod("b")]
        assert plan.disable_only == [Mod("space-age")]

    def test_all_with_targets_is_rejected(self, two_versions):
        graph, installed = two_versions
        with pytest.raises(InvalidTargetError):
            plan_uninstall(graph, installed, [ModSpec(Mod("X"))], all_mods=True)
