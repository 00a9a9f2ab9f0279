"""Discovery of MOD artifacts present on disk.

A MOD directory holds packaged MODs as ``{name}_{version}.zip`` files and
unpacked MODs as ``{name}`` or ``{name}_{version}`` directories containing
an ``info.json``. The game's data directory ships ``base`` and the
expansions as unpacked directories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from errors import ManifestError
from mods.identity import Mod
from mods.manifest import InfoJson
from versioning.models import ModVersion

logger = logging.getLogger(__name__)


class StorageForm(Enum):
    """How an installed artifact is stored; directories win over ZIPs."""
    ZIP = "zip"
    DIRECTORY = "directory"

    @property
    def priority(self) -> int:
        return 1 if self is StorageForm.DIRECTORY else 0


@dataclass(frozen=True)
class InstalledMod:
    """One installed artifact of a MOD at a specific version."""
    mod: Mod
    version: ModVersion
    form: StorageForm
    path: Path
    info: InfoJson

    def __str__(self) -> str:
        return f"{self.mod}@{self.version} ({self.form.value}: {self.path})"


def _skip(path: Path, reason: str, **details) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            "Skipping invalid MOD package %s: %s",
            path,
            reason,
            extra=extra_context(event="scan_skip", component="installed", target=str(path), **details),
        )


def _scan_zip(path: Path) -> Optional[InstalledMod]:
    try:
        info = InfoJson.from_zip(path)
    except ManifestError as exc:
        _skip(path, exc.message)
        return None
    expected = f"{info.name}_{info.version}.zip"
    if path.name != expected:
        _skip(path, "file name mismatch", expected=expected)
        return None
    return InstalledMod(info.mod, info.version, StorageForm.ZIP, path, info)


def _scan_directory(path: Path) -> Optional[InstalledMod]:
    info_path = path / "info.json"
    if not info_path.is_file():
        _skip(path, "missing info.json")
        return None
    try:
        info = InfoJson.from_file(info_path)
    except ManifestError as exc:
        _skip(path, exc.message)
        return None
    if path.name not in (info.name, f"{info.name}_{info.version}"):
        _skip(path, "directory name mismatch", expected=f"{info.name} or {info.name}_{info.version}")
        return None
    return InstalledMod(info.mod, info.version, StorageForm.DIRECTORY, path, info)


def _scan_dir(directory: Path) -> List[InstalledMod]:
    found: List[InstalledMod] = []
    for child in sorted(directory.iterdir()):
        if child.is_file() and child.suffix == ".zip":
            item = _scan_zip(child)
        elif child.is_dir():
            item = _scan_directory(child)
        else:
            continue
        if item is not None:
            found.append(item)
    return found


def _resolve_duplicates(mods: Iterable[InstalledMod]) -> List[InstalledMod]:
    best: Dict[Tuple[Mod, ModVersion], InstalledMod] = {}
    for item in mods:
        key = (item.mod, item.version)
        current = best.get(key)
        if current is None or item.form.priority > current.form.priority:
            best[key] = item
    return list(best.values())


def scan_installed_mods(mod_dir: Path, data_dir: Optional[Path] = None) -> List[InstalledMod]:
    """Scan ``mod_dir`` (and base/expansions in ``data_dir``).

    Args:
        mod_dir: Directory holding user-installed MODs.
        data_dir: Optional game data directory; only base and expansion
            MODs found there are kept.

    Returns:
        Installed artifacts sorted by version, newest first. Same
        name-and-version duplicates collapse to one entry, preferring the
        unpacked directory.
    """
    mod_dir = Path(mod_dir)
    found: List[InstalledMod] = []
    if mod_dir.is_dir():
        found.extend(_scan_dir(mod_dir))
    else:
        logger.warning("MOD directory does not exist: %s", mod_dir)

    if data_dir is not None and Path(data_dir).is_dir():
        found.extend(m for m in _scan_dir(Path(data_dir)) if m.mod.is_builtin)

    result = _resolve_duplicates(found)
    result.sort(key=lambda m: (m.version, m.mod.name), reverse=True)
    logger.info("Found %d installed MOD artifact(s) in %s", len(result), mod_dir)
    return result


def versions_of(installed_mods: Iterable[InstalledMod], mod: Mod) -> List[ModVersion]:
    """Installed versions of ``mod``, newest first."""
    return sorted({m.version for m in installed_mods if m.mod == mod}, reverse=True)


def group_by_mod(installed_mods: Iterable[InstalledMod]) -> Dict[Mod, List[InstalledMod]]:
    """Group artifacts by identity, newest version first within each group."""
    groups: Dict[Mod, List[InstalledMod]] = {}
    for item in installed_mods:
        groups.setdefault(item.mod, []).append(item)
    for items in groups.values():
        items.sort(key=lambda m: m.version, reverse=True)
    return groups
