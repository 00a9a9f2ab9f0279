"""Planning of MOD uninstallation."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set

from dependency import algorithms
from dependency.graph import Graph
from errors import DependentsBlockError, InvalidTargetError
from mods.identity import Mod
from mods.installed import InstalledMod
from planning.plans import UninstallPlan
from versioning.models import ModVersion
from versioning.parser import ModSpec

logger = logging.getLogger(__name__)


def _check_target(spec: ModSpec) -> None:
    if spec.mod.is_base:
        raise InvalidTargetError("Cannot uninstall base MOD", context={"mod": spec.mod.name})
    if spec.mod.is_expansion:
        raise InvalidTargetError(
            f"Cannot uninstall expansion MOD: {spec.mod}", context={"mod": spec.mod.name}
        )


def _collect_removals(
    graph: Graph, installed_mods: List[InstalledMod], targets: Iterable[ModSpec]
) -> Dict[Mod, Optional[Set[ModVersion]]]:
    """Map each target MOD to the versions to remove (None means all)."""
    removals: Dict[Mod, Optional[Set[ModVersion]]] = {}
    for spec in targets:
        _check_target(spec)
        if not graph.has_node(spec.mod):
            logger.warning("MOD not installed: %s", spec.mod)
            continue
        if spec.version is None:
            removals[spec.mod] = None
            continue
        if not any(m.mod == spec.mod and m.version == spec.version for m in installed_mods):
            logger.warning("MOD version not installed: %s", spec)
            continue
        if spec.mod in removals and removals[spec.mod] is None:
            continue
        removals.setdefault(spec.mod, set()).add(spec.version)
    return removals


def plan_uninstall(
    graph: Graph,
    installed_mods: Iterable[InstalledMod],
    targets: Iterable[ModSpec] = (),
    all_mods: bool = False,
) -> UninstallPlan:
    """Compute which artifacts to delete.

    For each target the installed versions that would remain are checked
    against every enabled dependent's required edge; all dependents left
    unsatisfied are reported together. Dependents removed entirely by the
    same plan do not block it.

    With ``all_mods`` every MOD other than base and the expansions is
    removed, dependents first, and enabled expansions are only disabled.

    Raises:
        InvalidTargetError: base or an expansion is targeted, or
            neither/both of ``targets`` and ``all_mods`` were given.
        DependentsBlockError: enabled dependents would be left without an
            acceptable version.
    """
    installed = list(installed_mods)
    targets = list(targets)
    if all_mods and targets:
        raise InvalidTargetError("Cannot combine MOD specs with --all")
    if not all_mods and not targets:
        raise InvalidTargetError("No MODs given to uninstall")

    if all_mods:
        return _plan_uninstall_all(graph, installed)

    removals = _collect_removals(graph, installed, targets)
    fully_removed = {
        mod for mod, versions in removals.items()
        if versions is None or not any(m.mod == mod and m.version not in versions for m in installed)
    }

    plan = UninstallPlan()
    for mod, versions in removals.items():
        removed = [m for m in installed if m.mod == mod and (versions is None or m.version in versions)]
        remaining = [m.version for m in installed if m.mod == mod and m not in removed]

        blocked: List[str] = []
        for dependent in graph.find_enabled_dependents(mod):
            if dependent.mod in fully_removed:
                continue
            for edge in graph.required_dependencies(dependent.mod):
                if edge.to_mod != mod:
                    continue
                if not any(edge.satisfied_by(v) for v in remaining):
                    blocked.append(dependent.mod.name)
                    break
        if blocked:
            label = f"{mod}@{','.join(str(v) for v in sorted(versions))}" if versions else mod.name
            raise DependentsBlockError(mod.name, label, blocked)

        plan.artifacts.extend(removed)
        if mod in fully_removed:
            plan.remove_from_list.append(mod)

    logger.debug(
        "Uninstall plan: %d artifact(s), %d list removal(s)",
        len(plan.artifacts), len(plan.remove_from_list),
    )
    return plan


def _plan_uninstall_all(graph: Graph, installed: List[InstalledMod]) -> UninstallPlan:
    plan = UninstallPlan()
    for mod in algorithms.reverse_topological_order(graph):
        if mod.is_base:
            continue
        if mod.is_expansion:
            node = graph.node(mod)
            if node is not None and node.enabled:
                plan.disable_only.append(mod)
            continue
        plan.artifacts.extend(m for m in installed if m.mod == mod)
        plan.remove_from_list.append(mod)
    return plan
