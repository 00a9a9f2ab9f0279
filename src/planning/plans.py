"""Plan objects returned by the planners.

Plans describe changes; ``plan_executor`` applies them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dependency.graph import Operation
from mods.identity import Mod
from mods.installed import InstalledMod
from registry.models import ModInfo, Release
from versioning.models import ModVersion


@dataclass
class EnablePlan:
    """MODs to enable, targets first and then their required closure."""
    mods: List[Mod] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.mods


@dataclass
class DisablePlan:
    """MODs to disable, targets first and then their enabled dependents."""
    mods: List[Mod] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.mods


@dataclass
class UninstallPlan:
    """Artifacts to delete and MOD list entries to drop or disable."""
    artifacts: List[InstalledMod] = field(default_factory=list)
    remove_from_list: List[Mod] = field(default_factory=list)
    disable_only: List[Mod] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.artifacts or self.disable_only)


@dataclass
class InstallItem:
    """One step of an install plan."""
    mod: Mod
    operation: Operation
    version: ModVersion
    release: Optional[Release] = None
    output_path: Optional[Path] = None
    mod_info: Optional[ModInfo] = None


@dataclass
class InstallPlan:
    """Ordered install/enable steps (dependencies first) plus warnings."""
    items: List[InstallItem] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def installs(self) -> List[InstallItem]:
        return [i for i in self.items if i.operation is Operation.INSTALL]

    @property
    def enables(self) -> List[InstallItem]:
        return [i for i in self.items if i.operation is Operation.ENABLE]


@dataclass
class UpdateItem:
    """A MOD with a newer release than its highest installed version."""
    mod: Mod
    current_version: ModVersion
    release: Release
    output_path: Path

    @property
    def new_version(self) -> ModVersion:
        return self.release.version


@dataclass
class UpdatePlan:
    items: List[UpdateItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass
class DownloadItem:
    """A release saved to ``output_path`` without touching the MOD list."""
    mod: Mod
    release: Release
    output_path: Path


@dataclass
class DownloadPlan:
    items: List[DownloadItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items
