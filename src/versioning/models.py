"""Data models for MOD versions and version requirements."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import semantic_version

from constants import Constants
from errors import VersionParseError

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
_SHORT_VERSION_RE = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?$")


@dataclass(frozen=True, order=True)
class ModVersion:
    """A MOD version triple, ordered component-wise."""
    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for part in (self.major, self.minor, self.patch):
            if not 0 <= part <= Constants.VERSION_COMPONENT_MAX:
                raise VersionParseError(
                    f"Version component out of range (0-{Constants.VERSION_COMPONENT_MAX}): "
                    f"{self.major}.{self.minor}.{self.patch}",
                    context={"version": f"{self.major}.{self.minor}.{self.patch}"},
                )

    @classmethod
    def from_string(cls, text: str) -> "ModVersion":
        """Parse a strict ``X.Y.Z`` string."""
        match = _VERSION_RE.match(str(text).strip())
        if not match:
            raise VersionParseError(f"Invalid version: {text!r}", context={"version": text})
        return cls(*(int(g) for g in match.groups()))

    @classmethod
    def coerce(cls, text: str) -> "ModVersion":
        """Parse ``X.Y`` or ``X.Y.Z``; a missing patch component is zero."""
        match = _SHORT_VERSION_RE.match(str(text).strip())
        if not match:
            raise VersionParseError(f"Invalid version: {text!r}", context={"version": text})
        major, minor, patch = match.groups()
        return cls(int(major), int(minor), int(patch or 0))

    def to_semver(self) -> semantic_version.Version:
        return semantic_version.Version(major=self.major, minor=self.minor, patch=self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class Comparator(Enum):
    """Version comparison operators allowed in dependency strings."""
    EQ = "="
    GE = ">="
    GT = ">"
    LE = "<="
    LT = "<"

    @property
    def semver_operator(self) -> str:
        # SimpleSpec spells equality as "=="
        return "==" if self is Comparator.EQ else self.value


@dataclass(frozen=True)
class VersionRequirement:
    """A comparator applied to a version, e.g. ``>= 1.2.0``."""
    comparator: Comparator
    version: ModVersion

    @property
    def spec(self) -> semantic_version.SimpleSpec:
        return semantic_version.SimpleSpec(f"{self.comparator.semver_operator}{self.version}")

    def satisfied_by(self, version: ModVersion) -> bool:
        """Return True when ``version`` meets this requirement."""
        return version.to_semver() in self.spec

    def __str__(self) -> str:
        return f"{self.comparator.value} {self.version}"


def requirement_satisfied(requirement: Optional[VersionRequirement], version: ModVersion) -> bool:
    """An absent requirement is always satisfied."""
    if requirement is None:
        return True
    return requirement.satisfied_by(version)
