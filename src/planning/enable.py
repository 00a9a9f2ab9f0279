"""Planning of MOD enablement."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, List, Set

from dependency.graph import Graph
from errors import ConflictError, MissingDependencyError, ModNotInstalledError, VersionMismatchError
from mods.identity import Mod
from planning.plans import EnablePlan

logger = logging.getLogger(__name__)


def plan_enable(graph: Graph, targets: Iterable[Mod]) -> EnablePlan:
    """Compute the MODs to enable for ``targets``.

    Walks required edges breadth-first from each disabled target, adding
    every disabled dependency. Already-enabled MODs are left out of the
    plan and their dependencies are not revisited. Edges to base are always
    satisfied.

    Args:
        graph: Current dependency graph.
        targets: MODs the user asked to enable.

    Returns:
        EnablePlan listing targets first, then dependencies in discovery order.

    Raises:
        ModNotInstalledError: a target has no node.
        MissingDependencyError: a required dependency is not installed.
        VersionMismatchError: the installed dependency version does not
            satisfy the requirement.
        ConflictError: a planned MOD is incompatible with an enabled MOD or
            with another planned MOD (checked in both edge directions).
    """
    plan: List[Mod] = []
    planned: Set[Mod] = set()
    queue = deque()

    for mod in targets:
        node = graph.node(mod)
        if node is None:
            raise ModNotInstalledError(mod.name)
        if node.enabled:
            logger.info("%s is already enabled", mod)
            continue
        if mod not in planned:
            planned.add(mod)
            plan.append(mod)
            queue.append(mod)

    while queue:
        current = queue.popleft()
        for edge in graph.required_dependencies(current):
            if edge.to_mod.is_base:
                continue
            dep = graph.node(edge.to_mod)
            if dep is None:
                raise MissingDependencyError(current.name, edge.to_mod.name)
            if not edge.satisfied_by(dep.version):
                raise VersionMismatchError(current.name, edge.to_mod.name, str(edge.requirement), str(dep.version))
            if dep.enabled or edge.to_mod in planned:
                continue
            planned.add(edge.to_mod)
            plan.append(edge.to_mod)
            queue.append(edge.to_mod)

    _check_conflicts(graph, plan, planned)
    logger.debug("Enable plan: %s", ", ".join(m.name for m in plan) or "(empty)")
    return EnablePlan(plan)


def _check_conflicts(graph: Graph, plan: List[Mod], planned: Set[Mod]) -> None:
    for mod in plan:
        for edge in graph.incompatibilities(mod):
            other = edge.to_mod if edge.from_mod == mod else edge.from_mod
            if other == mod:
                continue
            node = graph.node(other)
            if node is not None and node.enabled:
                raise ConflictError(
                    mod.name, other.name,
                    f"Cannot enable {mod}: conflicts with {other} which is currently enabled",
                )
            if other in planned:
                raise ConflictError(
                    mod.name, other.name,
                    f"Cannot enable {mod}: conflicts with {other} which is also being enabled",
                )
