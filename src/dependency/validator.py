"""Consistency checks over a built dependency graph.

The validator reports problems; it never raises for them and never mutates
the graph or the MOD list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from dependency import algorithms
from dependency.graph import Edge, Graph, Node
from mods.identity import Mod
from mods.installed import InstalledMod
from mods.mod_list import ModList
from versioning.models import ModVersion

logger = logging.getLogger(__name__)


class IssueType:  # pylint: disable=too-few-public-methods
    """Issue type tags used in ``ValidationIssue.type``."""

    MISSING_DEPENDENCY = "missing_dependency"
    DISABLED_DEPENDENCY = "disabled_dependency"
    VERSION_MISMATCH = "version_mismatch"
    CONFLICT = "conflict"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    MOD_IN_LIST_NOT_INSTALLED = "mod_in_list_not_installed"
    MOD_INSTALLED_NOT_IN_LIST = "mod_installed_not_in_list"
    ENABLE_DEPENDENCY = "enable_dependency"
    USE_INSTALLED_VERSION = "use_installed_version"


@dataclass
class ValidationIssue:
    """A single error, warning or suggestion."""
    type: str
    message: str
    mod: Optional[Mod] = None
    dependency: Optional[Mod] = None
    version: Optional[ModVersion] = None

    def to_dict(self) -> dict:
        data = {"type": self.type, "message": self.message}
        if self.mod is not None:
            data["mod"] = self.mod.name
        if self.dependency is not None:
            data["dependency"] = self.dependency.name
        if self.version is not None:
            data["version"] = str(self.version)
        return data


@dataclass
class ValidationResult:
    """Ordered collections of issues found by ``Validator``."""
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)
    suggestions: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_suggestions(self) -> bool:
        return bool(self.suggestions)

    def errors_of(self, issue_type: str) -> List[ValidationIssue]:
        return [e for e in self.errors if e.type == issue_type]

    def to_dict(self) -> dict:
        return {
            "valid": self.is_valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "suggestions": [i.to_dict() for i in self.suggestions],
        }


class Validator:
    """Runs every check against a graph and collects the findings.

    Args:
        graph: Graph built from the installed MODs.
        mod_list: The MOD list, for orphan and stale-entry warnings.
        installed_mods: Every installed artifact, for version suggestions.
    """

    def __init__(
        self,
        graph: Graph,
        mod_list: Optional[ModList] = None,
        installed_mods: Optional[Iterable[InstalledMod]] = None,
    ) -> None:
        self.graph = graph
        self.mod_list = mod_list
        self.installed_mods: List[InstalledMod] = list(installed_mods or [])

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        self._check_required_dependencies(result)
        self._check_cycles(result)
        self._check_conflicts(result)
        if self.mod_list is not None:
            self._check_installed_not_in_list(result)
            self._check_in_list_not_installed(result)
        logger.debug(
            "Validation finished: %d error(s), %d warning(s), %d suggestion(s)",
            len(result.errors), len(result.warnings), len(result.suggestions),
        )
        return result

    def _enabled_nodes(self) -> List[Node]:
        return [n for n in self.graph.nodes() if n.enabled]

    def _check_required_dependencies(self, result: ValidationResult) -> None:
        for node in self._enabled_nodes():
            for edge in self.graph.required_dependencies(node.mod):
                self._check_required_edge(node, edge, result)

    def _check_required_edge(self, node: Node, edge: Edge, result: ValidationResult) -> None:
        target = self.graph.node(edge.to_mod)
        if target is None:
            if edge.to_mod.is_base:
                return
            result.errors.append(ValidationIssue(
                IssueType.MISSING_DEPENDENCY,
                f"MOD '{node.mod}' requires '{edge.to_mod}' which is not installed",
                mod=node.mod, dependency=edge.to_mod,
            ))
            self._suggest_other_version(node, edge, result)
            return
        if not target.enabled:
            result.errors.append(ValidationIssue(
                IssueType.DISABLED_DEPENDENCY,
                f"MOD '{node.mod}' requires '{edge.to_mod}' which is not enabled",
                mod=node.mod, dependency=edge.to_mod,
            ))
            if edge.satisfied_by(target.version):
                result.suggestions.append(ValidationIssue(
                    IssueType.ENABLE_DEPENDENCY,
                    f"Enable '{edge.to_mod}' (installed {target.version}) to satisfy '{node.mod}'",
                    mod=node.mod, dependency=edge.to_mod, version=target.version,
                ))
            else:
                self._suggest_other_version(node, edge, result)
            return
        if not edge.satisfied_by(target.version):
            result.errors.append(ValidationIssue(
                IssueType.VERSION_MISMATCH,
                f"MOD '{node.mod}' requires '{edge.to_mod}' version {edge.requirement}, "
                f"but version {target.version} is installed",
                mod=node.mod, dependency=edge.to_mod, version=target.version,
            ))
            self._suggest_other_version(node, edge, result)

    def _suggest_other_version(self, node: Node, edge: Edge, result: ValidationResult) -> None:
        current = self.graph.node(edge.to_mod)
        for artifact in self.installed_mods:
            if artifact.mod != edge.to_mod or (current is not None and artifact.version == current.version):
                continue
            if edge.satisfied_by(artifact.version):
                result.suggestions.append(ValidationIssue(
                    IssueType.USE_INSTALLED_VERSION,
                    f"Installed version {artifact.version} of '{edge.to_mod}' satisfies '{node.mod}'; "
                    f"pin it in the MOD list and enable it",
                    mod=node.mod, dependency=edge.to_mod, version=artifact.version,
                ))
                return

    def _check_cycles(self, result: ValidationResult) -> None:
        enabled = [n.mod for n in self._enabled_nodes()]
        for cycle in algorithms.cycles(self.graph, enabled):
            names = " -> ".join(m.name for m in cycle)
            result.errors.append(ValidationIssue(
                IssueType.CIRCULAR_DEPENDENCY,
                f"Circular dependency detected: {names}",
                mod=cycle[0],
            ))

    def _check_conflicts(self, result: ValidationResult) -> None:
        # every edge touching an enabled node is an outgoing edge of some enabled node
        for node in self._enabled_nodes():
            for edge in self.graph.edges_from(node.mod):
                if not edge.is_incompatible:
                    continue
                other = self.graph.node(edge.to_mod)
                if other is None or not other.enabled:
                    continue
                result.errors.append(ValidationIssue(
                    IssueType.CONFLICT,
                    f"MOD '{node.mod}' conflicts with '{edge.to_mod}' but both are enabled",
                    mod=node.mod, dependency=edge.to_mod,
                ))

    def _check_installed_not_in_list(self, result: ValidationResult) -> None:
        for node in self.graph.nodes():
            if not node.installed or self.mod_list.exists(node.mod):
                continue
            result.warnings.append(ValidationIssue(
                IssueType.MOD_INSTALLED_NOT_IN_LIST,
                f"MOD '{node.mod}' is installed but not in mod-list.json",
                mod=node.mod, version=node.version,
            ))

    def _check_in_list_not_installed(self, result: ValidationResult) -> None:
        for mod, _state in self.mod_list:
            if mod.is_base or self.graph.has_node(mod):
                continue
            result.warnings.append(ValidationIssue(
                IssueType.MOD_IN_LIST_NOT_INSTALLED,
                f"MOD '{mod}' in mod-list.json is not installed",
                mod=mod,
            ))


def validate(
    graph: Graph,
    mod_list: Optional[ModList] = None,
    installed_mods: Optional[Iterable[InstalledMod]] = None,
) -> ValidationResult:
    """Validate ``graph``; see ``Validator``."""
    return Validator(graph, mod_list, installed_mods).validate()
