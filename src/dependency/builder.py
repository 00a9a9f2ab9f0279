"""Construction of the dependency graph from installed MODs and the MOD list."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from common.logging_utils import extra_context, is_debug_enabled
from dependency.graph import Graph, Node
from mods.installed import InstalledMod, group_by_mod
from mods.mod_list import ModList

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Builds a ``Graph`` with one node per installed MOD identity.

    When several versions of a MOD are installed, the node represents the
    version pinned in the MOD list if that version is present, otherwise
    the highest installed version. Its edges come from that artifact's
    manifest.
    """

    def __init__(self, installed_mods: Iterable[InstalledMod], mod_list: Optional[ModList] = None) -> None:
        self.installed_mods: List[InstalledMod] = list(installed_mods)
        self.mod_list = mod_list

    def _select(self, artifacts: List[InstalledMod]) -> InstalledMod:
        mod = artifacts[0].mod
        if self.mod_list is not None and self.mod_list.exists(mod):
            pinned = self.mod_list.version(mod)
            if pinned is not None:
                for artifact in artifacts:
                    if artifact.version == pinned:
                        return artifact
                logger.warning(
                    "Pinned version %s of %s is not installed; using %s",
                    pinned, mod, artifacts[0].version,
                )
        return artifacts[0]

    def _is_enabled(self, artifact: InstalledMod) -> bool:
        if artifact.mod.is_base:
            return True
        if self.mod_list is None or not self.mod_list.exists(artifact.mod):
            return False
        return self.mod_list.is_enabled(artifact.mod)

    def build(self) -> Graph:
        graph = Graph()
        groups = group_by_mod(self.installed_mods)
        for mod in sorted(groups):
            artifact = self._select(groups[mod])
            graph.add_node(Node(mod, artifact.version, enabled=self._is_enabled(artifact), installed=True))
            graph.add_entries(mod, artifact.info.dependencies)
        if is_debug_enabled(logger):
            logger.debug(
                "Built dependency graph",
                extra=extra_context(
                    event="graph_built",
                    component="builder",
                    nodes=len(graph),
                    edges=len(graph.edges()),
                ),
            )
        return graph


def build_graph(installed_mods: Iterable[InstalledMod], mod_list: Optional[ModList] = None) -> Graph:
    """Convenience wrapper around ``GraphBuilder``."""
    return GraphBuilder(installed_mods, mod_list).build()
