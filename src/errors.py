"""Exception hierarchy for modgate.

Planner errors are raised before anything is written to disk; the CLI maps
each family to an exit code. Every error carries a ``context`` dict with the
identities involved so callers can report them without parsing messages.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class ModgateError(Exception):
    """Base class for all modgate errors."""

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})


# Parsing and local data

class VersionParseError(ModgateError, ValueError):
    """A version string is not a valid X.Y.Z triple."""


class DependencyParseError(ModgateError, ValueError):
    """A dependency string does not follow the dependency grammar."""


class ManifestError(ModgateError):
    """An info.json manifest is missing or malformed."""


class ModListError(ModgateError):
    """The mod-list.json file is missing or malformed."""


class ModNotInListError(ModgateError, KeyError):
    """A MOD was queried that is not present in the MOD list."""

    def __str__(self) -> str:
        return self.message


class ConfigError(ModgateError):
    """Configuration file or environment value is invalid."""


# Planning

class PlanningError(ModgateError):
    """A planner refused to produce a plan."""


class MissingDependencyError(PlanningError):
    """A required dependency is neither installed nor obtainable."""

    def __init__(self, mod: str, dependency: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Cannot enable {mod}: required dependency {dependency} is not installed",
            context={"mod": mod, "dependency": dependency},
        )
        self.mod = mod
        self.dependency = dependency


class VersionMismatchError(PlanningError):
    """A required dependency exists but no acceptable version does."""

    def __init__(self, mod: str, dependency: str, required: str, actual: Optional[str]) -> None:
        super().__init__(
            f"Cannot enable {mod}: dependency {dependency} version requirement not satisfied "
            f"(required: {required}, installed: {actual})",
            context={"mod": mod, "dependency": dependency, "required": required, "installed": actual},
        )
        self.mod = mod
        self.dependency = dependency


class CircularDependencyError(PlanningError):
    """The required-edge subgraph contains at least one cycle."""

    def __init__(self, cycles: Sequence[Sequence[str]]) -> None:
        self.cycles: List[List[str]] = [list(c) for c in cycles]
        rendered = "; ".join(" -> ".join(c) for c in self.cycles)
        super().__init__(
            f"Circular dependency detected: {rendered}",
            context={"cycles": self.cycles},
        )


class ConflictError(PlanningError):
    """An incompatibility edge would hold between two enabled MODs."""

    def __init__(self, mod: str, other: str, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Cannot enable {mod}: conflicts with {other}",
            context={"mod": mod, "conflicts_with": other},
        )
        self.mod = mod
        self.other = other


class InvalidTargetError(PlanningError):
    """The operation is not permitted on the requested MOD."""


class ModNotInstalledError(InvalidTargetError):
    """The requested MOD is not installed."""

    def __init__(self, mod: str) -> None:
        super().__init__(f"MOD '{mod}' is not installed", context={"mod": mod})
        self.mod = mod


class DependentsBlockError(PlanningError):
    """Removing a MOD version would leave enabled dependents unsatisfied."""

    def __init__(self, mod: str, target: str, dependents: Sequence[str]) -> None:
        self.dependents = list(dependents)
        super().__init__(
            f"Cannot uninstall {target}: the following enabled MODs depend on it: "
            + ", ".join(self.dependents),
            context={"mod": mod, "target": target, "dependents": self.dependents},
        )
        self.mod = mod


# Registry

class RegistryError(ModgateError):
    """The registry could not be reached or returned an unusable response."""


class ModNotOnRegistryError(RegistryError):
    """The registry has no record of the requested MOD."""

    def __init__(self, mod: str) -> None:
        super().__init__(f"MOD '{mod}' not found on the registry", context={"mod": mod})
        self.mod = mod


class RegistryUnavailableError(PlanningError):
    """An explicitly requested MOD could not be fetched from the registry."""

    def __init__(self, mod: str, reason: str, action: str = "install") -> None:
        super().__init__(f"Cannot {action} {mod}: {reason}", context={"mod": mod, "reason": reason})
        self.mod = mod


class RegistryTransitiveError(ModgateError):
    """A discovered dependency could not be fetched; recoverable by skipping it."""

    def __init__(self, mod: str, requested_by: str, reason: str) -> None:
        super().__init__(
            f"Skipping dependency {mod} of {requested_by}: {reason}",
            context={"mod": mod, "requested_by": requested_by, "reason": reason},
        )
        self.mod = mod
        self.requested_by = requested_by


class DownloadError(ModgateError):
    """A release archive could not be downloaded or failed verification."""
