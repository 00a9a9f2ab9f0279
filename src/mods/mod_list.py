"""The MOD list: which MODs the game loads, and at which pinned version.

Persisted as ``mod-list.json``::

    {"mods": [{"name": "base", "enabled": true},
              {"name": "some-mod", "enabled": false, "version": "1.2.0"}]}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import jsonschema

from errors import InvalidTargetError, ModListError, ModNotInListError, VersionParseError
from mods.identity import BASE, Mod
from versioning.models import ModVersion

logger = logging.getLogger(__name__)

MOD_LIST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["mods"],
    "properties": {
        "mods": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "enabled"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "enabled": {"type": "boolean"},
                    "version": {"type": "string"},
                },
            },
        }
    },
}


@dataclass
class ModState:
    """Per-MOD entry of the MOD list."""
    enabled: bool
    version: Optional[ModVersion] = None


class ModList:
    """Ordered mapping of MOD to its list state."""

    def __init__(self, entries: Optional[Dict[Mod, ModState]] = None) -> None:
        self._mods: Dict[Mod, ModState] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> "ModList":
        """Load ``mod-list.json``.

        Raises:
            ModListError: unreadable file, malformed JSON, or schema violation.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ModListError(f"Cannot read MOD list {path}: {exc}", context={"path": str(path)}) from exc
        except json.JSONDecodeError as exc:
            raise ModListError(f"Malformed MOD list {path}: {exc}", context={"path": str(path)}) from exc
        try:
            jsonschema.validate(instance=data, schema=MOD_LIST_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise ModListError(f"Invalid MOD list {path}: {exc.message}", context={"path": str(path)}) from exc

        mod_list = cls()
        for entry in data["mods"]:
            version = None
            if entry.get("version"):
                try:
                    version = ModVersion.from_string(entry["version"])
                except VersionParseError:
                    logger.warning("Ignoring invalid pinned version for %s: %r", entry["name"], entry["version"])
            mod_list._mods[Mod(entry["name"])] = ModState(entry["enabled"], version)
        logger.debug("Loaded %d MOD list entries from %s", len(mod_list), path)
        return mod_list

    @classmethod
    def load_or_default(cls, path: Path) -> "ModList":
        """Load the list, or start one containing only base if the file is absent."""
        if Path(path).exists():
            return cls.load(path)
        logger.info("MOD list %s not found; starting with base only", path)
        return cls({BASE: ModState(True)})

    def to_dict(self) -> Dict[str, Any]:
        mods = []
        for mod, state in self._mods.items():
            entry: Dict[str, Any] = {"name": mod.name, "enabled": state.enabled}
            if state.version is not None:
                entry["version"] = str(state.version)
            mods.append(entry)
        return {"mods": mods}

    def save(self, path: Path) -> None:
        """Write the list as pretty-printed JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")
        logger.debug("Saved %d MOD list entries to %s", len(self), path)

    def __iter__(self) -> Iterator[Tuple[Mod, ModState]]:
        return iter(list(self._mods.items()))

    def __len__(self) -> int:
        return len(self._mods)

    def __contains__(self, mod: Mod) -> bool:
        return mod in self._mods

    def exists(self, mod: Mod) -> bool:
        return mod in self._mods

    def _state(self, mod: Mod) -> ModState:
        try:
            return self._mods[mod]
        except KeyError:
            raise ModNotInListError(f"MOD not in the list: {mod}", context={"mod": mod.name}) from None

    def is_enabled(self, mod: Mod) -> bool:
        return self._state(mod).enabled

    def version(self, mod: Mod) -> Optional[ModVersion]:
        return self._state(mod).version

    def add(self, mod: Mod, enabled: bool = True, version: Optional[ModVersion] = None) -> None:
        """Add or replace an entry."""
        if mod.is_base and not enabled:
            raise InvalidTargetError("Cannot disable base MOD", context={"mod": mod.name})
        self._mods[mod] = ModState(enabled, version)

    def remove(self, mod: Mod) -> None:
        if mod.is_base:
            raise InvalidTargetError("Cannot remove base MOD", context={"mod": mod.name})
        self._mods.pop(mod, None)

    def enable(self, mod: Mod) -> None:
        self._state(mod).enabled = True

    def disable(self, mod: Mod) -> None:
        if mod.is_base:
            raise InvalidTargetError("Cannot disable base MOD", context={"mod": mod.name})
        self._state(mod).enabled = False

    def set_version(self, mod: Mod, version: Optional[ModVersion]) -> None:
        self._state(mod).version = version
