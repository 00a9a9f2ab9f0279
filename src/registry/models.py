"""Data models for registry (MOD portal) responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from errors import RegistryError, VersionParseError
from mods.identity import Mod
from versioning.models import ModVersion, VersionRequirement, requirement_satisfied
from versioning.parser import DependencyEntry, parse_dependencies

logger = logging.getLogger(__name__)

RELEASE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["download_url", "file_name", "released_at", "version"],
    "properties": {
        "download_url": {"type": "string"},
        "file_name": {"type": "string"},
        "released_at": {"type": "string"},
        "version": {"type": "string"},
        "sha1": {"type": "string"},
        "info_json": {
            "type": "object",
            "properties": {"dependencies": {"type": "array", "items": {"type": "string"}}},
        },
    },
}

MOD_INFO_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "owner": {"type": "string"},
        "category": {"type": ["string", "null"]},
        "releases": {"type": "array", "items": RELEASE_SCHEMA},
    },
}


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by the portal (trailing ``Z``)."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise RegistryError(f"Invalid release timestamp: {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Release:
    """One published release of a MOD."""
    version: ModVersion
    download_url: str
    file_name: str
    released_at: datetime
    sha1: Optional[str] = None
    info_json: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def raw_dependencies(self) -> List[str]:
        return list(self.info_json.get("dependencies") or [])

    def dependencies(self, owner: Optional[str] = None) -> List[DependencyEntry]:
        """Parsed dependency entries of this release's manifest."""
        return parse_dependencies(self.raw_dependencies, owner=owner)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Release":
        try:
            version = ModVersion.from_string(data["version"])
        except VersionParseError as exc:
            raise RegistryError(f"Invalid release version: {data.get('version')!r}") from exc
        return cls(
            version=version,
            download_url=data["download_url"],
            file_name=data["file_name"],
            released_at=parse_timestamp(data["released_at"]),
            sha1=data.get("sha1"),
            info_json=dict(data.get("info_json") or {}),
        )


@dataclass(frozen=True)
class ModInfo:
    """Registry metadata for a MOD with its releases."""
    name: str
    title: str = ""
    owner: str = ""
    category: Optional[str] = None
    releases: List[Release] = field(default_factory=list)

    @property
    def mod(self) -> Mod:
        return Mod(self.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModInfo":
        return cls(
            name=data["name"],
            title=data.get("title") or "",
            owner=data.get("owner") or "",
            category=data.get("category"),
            releases=[Release.from_dict(r) for r in data.get("releases") or []],
        )

    def latest_release(self) -> Optional[Release]:
        """Most recently published release (not necessarily highest version)."""
        if not self.releases:
            return None
        return max(self.releases, key=lambda r: r.released_at)

    def find_release(self, version: ModVersion) -> Optional[Release]:
        return next((r for r in self.releases if r.version == version), None)

    def latest_release_satisfying(self, requirement: Optional[VersionRequirement]) -> Optional[Release]:
        """Most recently published release meeting ``requirement``."""
        candidates = [r for r in self.releases if requirement_satisfied(requirement, r.version)]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.released_at)
