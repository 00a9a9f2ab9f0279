"""Planning of MOD updates to their latest published release."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional

from constants import Constants
from errors import InvalidTargetError, ModNotOnRegistryError
from mods.identity import Mod
from mods.installed import InstalledMod, versions_of
from planning.plans import UpdateItem, UpdatePlan
from planning.progress import ProgressCounter

logger = logging.getLogger(__name__)


def _check_target(mod: Mod) -> None:
    if mod.is_base:
        raise InvalidTargetError("Cannot update base MOD", context={"mod": mod.name})
    if mod.is_expansion:
        raise InvalidTargetError(f"Cannot update expansion MOD: {mod}", context={"mod": mod.name})


def plan_update(
    installed_mods: Iterable[InstalledMod],
    registry,
    mod_dir: Path,
    targets: Iterable[Mod] = (),
    jobs: int = Constants.DEFAULT_JOBS,
) -> UpdatePlan:
    """Find MODs whose latest release is newer than the highest installed version.

    Args:
        installed_mods: Installed artifacts.
        registry: Object with ``fetch_mod(name) -> ModInfo``.
        mod_dir: Directory new archives will be written to.
        targets: MODs to check; every installed non-builtin MOD if empty.
        jobs: Maximum concurrent registry requests.

    Raises:
        InvalidTargetError: base or an expansion is targeted.
        RegistryError: the registry failed for a reason other than not
            knowing the MOD.
    """
    installed = list(installed_mods)
    mods: List[Mod] = []
    for mod in targets:
        _check_target(mod)
        if mod not in mods:
            mods.append(mod)
    if not mods:
        for item in installed:
            if not item.mod.is_builtin and item.mod not in mods:
                mods.append(item.mod)

    progress = ProgressCounter("Checking for updates", total=len(mods))

    def check(mod: Mod) -> Optional[UpdateItem]:
        try:
            versions = versions_of(installed, mod)
            if not versions:
                logger.warning("%s is not installed, skipping", mod)
                return None
            try:
                info = registry.fetch_mod(mod.name)
            except ModNotOnRegistryError:
                logger.debug("%s not found on the registry", mod)
                return None
            latest = info.latest_release()
            if latest is None or latest.version <= versions[0]:
                return None
            return UpdateItem(mod, versions[0], latest, Path(mod_dir) / latest.file_name)
        finally:
            progress.advance(mod.name)

    with ThreadPoolExecutor(max_workers=max(1, int(jobs)), thread_name_prefix="modgate-update") as pool:
        results = list(pool.map(check, mods))

    plan = UpdatePlan([r for r in results if r is not None])
    logger.debug("Update plan: %d of %d MOD(s) outdated", len(plan.items), len(mods))
    return plan
