"""Planning of MOD disablement."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, List, Set

from dependency.graph import Graph
from errors import InvalidTargetError
from mods.identity import Mod
from planning.plans import DisablePlan

logger = logging.getLogger(__name__)


def plan_disable(graph: Graph, targets: Iterable[Mod] = (), all_mods: bool = False) -> DisablePlan:
    """Compute the MODs to disable.

    Disabling a MOD also disables every enabled MOD that transitively
    requires it. With ``all_mods`` every enabled MOD except base is
    disabled.

    Raises:
        InvalidTargetError: base is targeted, or neither/both of
            ``targets`` and ``all_mods`` were given.
    """
    targets = list(targets)
    if all_mods and targets:
        raise InvalidTargetError("Cannot combine MOD names with --all")
    if not all_mods and not targets:
        raise InvalidTargetError("No MODs given to disable")

    if all_mods:
        mods = [n.mod for n in graph.nodes() if n.enabled and not n.mod.is_base]
        return DisablePlan(mods)

    plan: List[Mod] = []
    planned: Set[Mod] = set()
    queue = deque()

    for mod in targets:
        if mod.is_base:
            raise InvalidTargetError("Cannot disable base MOD", context={"mod": mod.name})
        node = graph.node(mod)
        if node is None:
            logger.warning("%s is not installed, skipping", mod)
            continue
        if not node.enabled:
            logger.info("%s is already disabled", mod)
            continue
        if mod not in planned:
            planned.add(mod)
            plan.append(mod)
            queue.append(mod)

    while queue:
        current = queue.popleft()
        for dependent in graph.find_enabled_dependents(current):
            if dependent.mod in planned:
                continue
            planned.add(dependent.mod)
            plan.append(dependent.mod)
            queue.append(dependent.mod)

    logger.debug("Disable plan: %s", ", ".join(m.name for m in plan) or "(empty)")
    return DisablePlan(plan)
