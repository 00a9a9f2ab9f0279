"""Install planning with concurrent registry resolution.

Planning proceeds in rounds. Round 0 resolves the requested specs; each
following round fetches the required dependencies discovered by the
previous one, until no new MOD is discovered. Registry requests of a round
run on a bounded thread pool, while the graph is only ever modified on the
calling thread once the round's results are in.
"""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from dependency import algorithms
from dependency.graph import Graph, Node, Operation
from errors import (
    CircularDependencyError,
    ConflictError,
    InvalidTargetError,
    ModNotOnRegistryError,
    RegistryError,
    RegistryTransitiveError,
    RegistryUnavailableError,
)
from mods.identity import Mod
from planning.plans import InstallItem, InstallPlan
from planning.progress import ProgressCounter
from registry.models import ModInfo, Release
from versioning.models import VersionRequirement
from versioning.parser import ModSpec

logger = logging.getLogger(__name__)

_PARTICIPLE = {Operation.INSTALL: "installed", Operation.ENABLE: "enabled"}


@dataclass(frozen=True)
class _Pending:
    """A dependency discovered in one round and fetched in the next."""
    target: Mod
    requested_by: Mod
    requirement: Optional[VersionRequirement]


@dataclass(frozen=True)
class _Resolved:
    mod_info: ModInfo
    release: Release


class InstallPlanner:
    """Builds an ``InstallPlan`` for a set of requested MOD specs.

    Args:
        graph: Graph of the installed MODs; speculative nodes are added to it.
        registry: Object with ``fetch_mod(name) -> ModInfo``.
        mod_dir: Directory new archives will be written to.
        jobs: Maximum concurrent registry requests.
    """

    def __init__(self, graph: Graph, registry, mod_dir: Path, jobs: int = Constants.DEFAULT_JOBS) -> None:
        self.graph = graph
        self.registry = registry
        self.mod_dir = Path(mod_dir)
        self.jobs = max(1, int(jobs))
        self._resolved: Dict[Mod, _Resolved] = {}
        self._warnings: List[str] = []

    # Workers (run on pool threads; must not touch the graph)

    def _fetch_explicit(self, spec: ModSpec, progress: ProgressCounter) -> _Resolved:
        try:
            info = self.registry.fetch_mod(spec.mod.name)
        except ModNotOnRegistryError as exc:
            raise RegistryUnavailableError(spec.mod.name, "not found on the registry") from exc
        except RegistryError as exc:
            raise RegistryUnavailableError(spec.mod.name, exc.message) from exc
        finally:
            progress.advance(spec.mod.name)

        release = info.find_release(spec.version) if spec.version else info.latest_release()
        if release is None:
            wanted = str(spec.version) if spec.version else Constants.LATEST
            raise RegistryUnavailableError(spec.mod.name, f"Release not found for {spec.mod}@{wanted}")
        return _Resolved(info, release)

    def _fetch_dependency(self, pending: _Pending, progress: ProgressCounter) -> _Resolved:
        try:
            info = self.registry.fetch_mod(pending.target.name)
        except ModNotOnRegistryError as exc:
            raise RegistryTransitiveError(
                pending.target.name, pending.requested_by.name, "not found on the registry"
            ) from exc
        except RegistryError as exc:
            raise RegistryTransitiveError(pending.target.name, pending.requested_by.name, exc.message) from exc
        finally:
            progress.advance(pending.target.name)

        release = info.latest_release_satisfying(pending.requirement)
        if release is None:
            raise RegistryTransitiveError(
                pending.target.name,
                pending.requested_by.name,
                f"no release satisfies {pending.requirement}",
            )
        return _Resolved(info, release)

    # Planning thread

    def plan(self, specs: Iterable[ModSpec]) -> InstallPlan:
        """Resolve ``specs`` and their required dependencies into a plan.

        Raises:
            InvalidTargetError: base/expansion requested, or a version of an
                installed MOD that is not the installed one.
            RegistryUnavailableError: a requested MOD or release cannot be
                fetched.
            CircularDependencyError: the extended graph has a required cycle.
            ConflictError: a MOD to install or enable is incompatible with an
                enabled or planned MOD.
        """
        to_fetch = self._select_explicit(specs)

        with Timer() as t, ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="modgate-install") as pool:
            progress = ProgressCounter("Resolving MODs", total=len(to_fetch))
            processed: Set[Mod] = {s.mod for s in to_fetch}

            added = self._run_explicit_round(pool, to_fetch, progress)
            round_no = 0
            while True:
                pending = self._frontier(added, processed)
                if not pending:
                    break
                round_no += 1
                logger.debug("Round %d: fetching %d dependenc(ies)", round_no, len(pending))
                processed.update(p.target for p in pending)
                progress.add_total(len(pending))
                added = self._run_dependency_round(pool, pending, progress)

        self._enable_closure()
        self._validate()
        plan = self._extract()

        if is_debug_enabled(logger):
            logger.debug(
                "Install plan ready",
                extra=extra_context(
                    event="plan",
                    component="install",
                    rounds=round_no + 1,
                    items=len(plan.items),
                    warnings=len(plan.warnings),
                    duration_ms=t.duration_ms(),
                ),
            )
        return plan

    def _select_explicit(self, specs: Iterable[ModSpec]) -> List[ModSpec]:
        """Validate requested specs; return the ones that need a registry fetch."""
        to_fetch: List[ModSpec] = []
        seen: Set[Mod] = set()
        for spec in specs:
            if spec.mod.is_builtin:
                raise InvalidTargetError(f"Cannot install {spec.mod}: it ships with the game", context={"mod": spec.mod.name})
            if spec.mod in seen:
                continue
            seen.add(spec.mod)

            node = self.graph.node(spec.mod)
            if node is None:
                to_fetch.append(spec)
                continue
            if spec.version is not None and spec.version != node.version:
                raise InvalidTargetError(
                    f"Cannot install {spec}: {spec.mod} is already installed at {node.version}; "
                    "uninstall it first or use update",
                    context={"mod": spec.mod.name, "installed": str(node.version)},
                )
            if node.enabled:
                logger.info("%s is already installed and enabled", spec.mod)
            else:
                logger.info("%s is already installed; it will be enabled", spec.mod)
                self.graph.set_node_operation(spec.mod, Operation.ENABLE)
        return to_fetch

    def _run_explicit_round(self, pool: ThreadPoolExecutor, specs: List[ModSpec],
                            progress: ProgressCounter) -> List[Mod]:
        futures: List[Future] = [pool.submit(self._fetch_explicit, spec, progress) for spec in specs]
        wait(futures, return_when=FIRST_EXCEPTION)
        failed = next((f for f in futures if f.done() and not f.cancelled() and f.exception()), None)
        if failed is not None:
            for future in futures:
                future.cancel()
            raise failed.exception()
        added: List[Mod] = []
        for future in futures:
            resolved = future.result()
            if self._commit(resolved):
                added.append(resolved.mod_info.mod)
        return added

    def _run_dependency_round(self, pool: ThreadPoolExecutor, pending: List[_Pending],
                              progress: ProgressCounter) -> List[Mod]:
        futures = [pool.submit(self._fetch_dependency, p, progress) for p in pending]
        added: List[Mod] = []
        for future in futures:
            try:
                resolved = future.result()
            except RegistryTransitiveError as exc:
                logger.warning(exc.message)
                self._warnings.append(exc.message)
                continue
            if self._commit(resolved):
                added.append(resolved.mod_info.mod)
        return added

    def _commit(self, resolved: _Resolved) -> bool:
        if not self.graph.add_uninstalled_mod(resolved.mod_info, resolved.release, Operation.INSTALL):
            return False
        self._resolved[resolved.mod_info.mod] = resolved
        return True

    def _frontier(self, added: List[Mod], processed: Set[Mod]) -> List[_Pending]:
        pending: Dict[Mod, _Pending] = {}
        for mod in added:
            for edge in self.graph.required_dependencies(mod):
                target = edge.to_mod
                if target.is_builtin or target in processed or target in pending:
                    continue
                if self.graph.has_node(target):
                    continue
                pending[target] = _Pending(target, mod, edge.requirement)
        return list(pending.values())

    def _enable_closure(self) -> None:
        queue = deque(n.mod for n in self.graph.nodes() if n.operation is not Operation.NONE)
        visited: Set[Mod] = set(queue)
        while queue:
            current = queue.popleft()
            for edge in self.graph.required_dependencies(current):
                dep: Optional[Node] = self.graph.node(edge.to_mod)
                if dep is None or not dep.installed:
                    continue
                if not edge.satisfied_by(dep.version):
                    message = (
                        f"{current} requires {edge.to_mod} {edge.requirement}, "
                        f"but version {dep.version} is installed"
                    )
                    logger.warning(message)
                    self._warnings.append(message)
                if not dep.enabled and dep.operation is Operation.NONE:
                    self.graph.set_node_operation(dep.mod, Operation.ENABLE)
                    if dep.mod not in visited:
                        visited.add(dep.mod)
                        queue.append(dep.mod)

    def _validate(self) -> None:
        found = algorithms.cycles(self.graph)
        if found:
            raise CircularDependencyError([[m.name for m in c] for c in found])

        for node in self.graph.nodes():
            if node.operation is Operation.NONE:
                continue
            for edge in self.graph.incompatibilities(node.mod):
                other_mod = edge.to_mod if edge.from_mod == node.mod else edge.from_mod
                other = self.graph.node(other_mod)
                if other is None or other.mod == node.mod:
                    continue
                if other.enabled:
                    raise ConflictError(
                        node.mod.name, other.mod.name,
                        f"Cannot {node.operation.value} {node.mod}: conflicts with {other.mod} which is currently enabled",
                    )
                if other.operation is not Operation.NONE:
                    raise ConflictError(
                        node.mod.name, other.mod.name,
                        f"Cannot {node.operation.value} {node.mod}: conflicts with {other.mod} "
                        f"which is also being {_PARTICIPLE[other.operation]}",
                    )

    def _extract(self) -> InstallPlan:
        plan = InstallPlan(warnings=list(self._warnings))
        for mod in algorithms.topological_order(self.graph):
            node = self.graph.node(mod)
            if node.operation is Operation.NONE:
                continue
            item = InstallItem(mod=mod, operation=node.operation, version=node.version)
            resolved = self._resolved.get(mod)
            if node.operation is Operation.INSTALL and resolved is not None:
                item.release = resolved.release
                item.mod_info = resolved.mod_info
                item.output_path = self.mod_dir / resolved.release.file_name
            plan.items.append(item)
        return plan


def plan_install(graph: Graph, registry, specs: Iterable[ModSpec], mod_dir: Path,
                 jobs: int = Constants.DEFAULT_JOBS) -> InstallPlan:
    """Convenience wrapper around ``InstallPlanner``."""
    return InstallPlanner(graph, registry, mod_dir, jobs).plan(specs)
