"""Parsing of dependency strings and ``name@version`` install specs.

Dependency strings come from ``info.json`` manifests and registry release
metadata, e.g. ``"? some-mod >= 1.2.0"``. The optional prefix selects the
dependency kind; the optional comparator/version pair constrains it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from constants import Constants
from errors import DependencyParseError, VersionParseError
from mods.identity import Mod
from .models import Comparator, ModVersion, VersionRequirement

logger = logging.getLogger(__name__)


class DependencyKind(Enum):
    """Kind of dependency, selected by the string prefix."""
    REQUIRED = "required"
    OPTIONAL = "optional"
    HIDDEN_OPTIONAL = "hidden_optional"
    INCOMPATIBLE = "incompatible"
    LOAD_NEUTRAL = "load_neutral"

    @property
    def drives_planning(self) -> bool:
        return self in (DependencyKind.REQUIRED, DependencyKind.INCOMPATIBLE)


_PREFIXES = {
    "(?)": DependencyKind.HIDDEN_OPTIONAL,
    "!": DependencyKind.INCOMPATIBLE,
    "?": DependencyKind.OPTIONAL,
    "~": DependencyKind.LOAD_NEUTRAL,
}

# (?) must be tried before ? so the alternation order matters
_DEPENDENCY_RE = re.compile(
    r"""^\s*
    (?P<prefix>\(\?\)|[!?~])?\s*
    (?P<name>[^\s<>=!?~(][^\s<>=]*(?:\s+[^\s<>=]+)*?)
    (?:\s*(?P<op><=|>=|=|<|>)\s*(?P<version>\S*))?
    \s*$""",
    re.VERBOSE,
)


@dataclass(frozen=True)
class DependencyEntry:
    """One parsed dependency of a MOD."""
    target: Mod
    kind: DependencyKind
    requirement: Optional[VersionRequirement] = None

    def __str__(self) -> str:
        prefix = next((p + " " for p, k in _PREFIXES.items() if k is self.kind), "")
        suffix = f" {self.requirement}" if self.requirement else ""
        return f"{prefix}{self.target}{suffix}"


@dataclass(frozen=True)
class ModSpec:
    """A requested MOD with an optional exact version (None means latest)."""
    mod: Mod
    version: Optional[ModVersion] = None

    def __str__(self) -> str:
        return f"{self.mod}@{self.version}" if self.version else self.mod.name


def parse_dependency(raw: str) -> DependencyEntry:
    """Parse one dependency string.

    Args:
        raw: Dependency string such as ``"! other-mod"`` or ``"lib >= 1.1"``.

    Returns:
        DependencyEntry

    Raises:
        DependencyParseError: empty input, missing name, or a comparator
            without a well-formed version.
    """
    if raw is None or not str(raw).strip():
        raise DependencyParseError("Empty dependency string", context={"raw": raw})

    match = _DEPENDENCY_RE.match(str(raw))
    if not match:
        raise DependencyParseError(f"Invalid dependency string: {raw!r}", context={"raw": raw})

    kind = _PREFIXES.get(match.group("prefix") or "", DependencyKind.REQUIRED)
    name = match.group("name").strip()
    if not name:
        raise DependencyParseError(f"Missing MOD name in dependency: {raw!r}", context={"raw": raw})

    requirement = None
    op = match.group("op")
    if op:
        version_text = match.group("version")
        if not version_text:
            raise DependencyParseError(
                f"Missing version after '{op}' in dependency: {raw!r}", context={"raw": raw}
            )
        try:
            requirement = VersionRequirement(Comparator(op), ModVersion.coerce(version_text))
        except VersionParseError as exc:
            if re.match(r"^\d+\.\d+(\.\d+)?$", version_text):
                # Numerically valid but out of range: keep the dependency, drop the constraint
                logger.warning("Ignoring version requirement in %r: %s", raw, exc.message)
            else:
                raise DependencyParseError(
                    f"Invalid version in dependency: {raw!r}", context={"raw": raw}
                ) from exc

    return DependencyEntry(Mod(name), kind, requirement)


def parse_dependencies(raws: Iterable[str], owner: Optional[str] = None) -> List[DependencyEntry]:
    """Parse a manifest dependency list, skipping entries that do not parse."""
    entries: List[DependencyEntry] = []
    for raw in raws or ():
        try:
            entries.append(parse_dependency(raw))
        except DependencyParseError as exc:
            logger.warning("Skipping dependency of %s: %s", owner or "unknown MOD", exc.message)
    return entries


def parse_mod_spec(token: str) -> ModSpec:
    """Parse ``name``, ``name@X.Y.Z`` or ``name@latest``."""
    token = (token or "").strip()
    if not token:
        raise DependencyParseError("Empty MOD spec", context={"raw": token})
    name, sep, version_text = token.rpartition("@")
    if not sep:
        return ModSpec(Mod(token))
    if not name:
        raise DependencyParseError(f"Missing MOD name in spec: {token!r}", context={"raw": token})
    if not version_text or version_text.lower() == Constants.LATEST:
        return ModSpec(Mod(name))
    try:
        return ModSpec(Mod(name), ModVersion.from_string(version_text))
    except VersionParseError as exc:
        raise DependencyParseError(f"Invalid version in spec: {token!r}", context={"raw": token}) from exc
