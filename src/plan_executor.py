"""Application of plans to the MOD directory and the MOD list.

Planners decide; these functions perform the side effects. The MOD list is
modified in memory and saved by the caller once execution has finished.
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Set, Tuple

from constants import Constants
from dependency.graph import Operation
from errors import DownloadError
from mods.identity import Mod
from mods.installed import StorageForm
from mods.mod_list import ModList
from planning.plans import DisablePlan, EnablePlan, InstallPlan, UninstallPlan, UpdatePlan
from planning.progress import ProgressCounter
from registry.downloader import Downloader
from registry.models import Release

logger = logging.getLogger(__name__)


def apply_enable(plan: EnablePlan, mod_list: ModList) -> None:
    for mod in plan.mods:
        if mod_list.exists(mod):
            mod_list.enable(mod)
        else:
            mod_list.add(mod, enabled=True)
        logger.info("Enabled %s", mod)


def apply_disable(plan: DisablePlan, mod_list: ModList) -> None:
    for mod in plan.mods:
        if mod_list.exists(mod):
            mod_list.disable(mod)
        else:
            mod_list.add(mod, enabled=False)
        logger.info("Disabled %s", mod)


def apply_uninstall(plan: UninstallPlan, mod_list: ModList) -> None:
    """Delete artifacts, then update the MOD list.

    Every artifact is attempted. A MOD with an artifact that could not be
    removed keeps its MOD list entry, so the list stays in step with the
    disk; the first failure is raised once the list has been updated.

    Raises:
        OSError
    """
    errors: List[OSError] = []
    kept: Set[Mod] = set()
    for artifact in plan.artifacts:
        try:
            if artifact.form is StorageForm.ZIP:
                artifact.path.unlink()
            else:
                shutil.rmtree(artifact.path)
        except OSError as exc:
            logger.error("Could not remove %s: %s", artifact, exc)
            errors.append(exc)
            kept.add(artifact.mod)
            continue
        logger.info("Removed %s", artifact)

        # a pin on a removed version would point at nothing
        if mod_list.exists(artifact.mod) and mod_list.version(artifact.mod) == artifact.version:
            mod_list.set_version(artifact.mod, None)

    for mod in plan.remove_from_list:
        if mod_list.exists(mod) and mod not in kept:
            mod_list.remove(mod)
            logger.info("Removed %s from the MOD list", mod)

    for mod in plan.disable_only:
        if mod_list.exists(mod):
            mod_list.disable(mod)
            logger.info("Disabled %s", mod)

    if errors:
        raise errors[0]


def download_all(downloader: Downloader, downloads: Sequence[Tuple[Release, object]],
                 jobs: int = Constants.DEFAULT_JOBS) -> None:
    """Download releases concurrently.

    Every download is attempted; the first failure is raised once all have
    finished.

    Raises:
        DownloadError
    """
    if not downloads:
        return
    progress = ProgressCounter("Downloading", total=len(downloads))

    def fetch(item):
        release, path = item
        try:
            return downloader.download(release, path)
        finally:
            progress.advance(release.file_name)

    errors: List[DownloadError] = []
    with ThreadPoolExecutor(max_workers=max(1, int(jobs)), thread_name_prefix="modgate-download") as pool:
        futures = [pool.submit(fetch, item) for item in downloads]
        for future in futures:
            try:
                future.result()
            except DownloadError as exc:
                logger.error(exc.message)
                errors.append(exc)
    if errors:
        raise errors[0]


def apply_install(plan: InstallPlan, mod_list: ModList, downloader: Downloader,
                  jobs: int = Constants.DEFAULT_JOBS) -> None:
    """Download new MODs, then enable everything in plan order."""
    download_all(downloader, [(i.release, i.output_path) for i in plan.installs], jobs)

    for item in plan.items:
        if item.operation is Operation.INSTALL or not mod_list.exists(item.mod):
            mod_list.add(item.mod, enabled=True)
        else:
            mod_list.enable(item.mod)
        logger.info("%s %s@%s", "Installed" if item.operation is Operation.INSTALL else "Enabled",
                    item.mod, item.version)


def apply_update(plan: UpdatePlan, mod_list: ModList, downloader: Downloader,
                 jobs: int = Constants.DEFAULT_JOBS) -> None:
    """Download newer releases; keep each MOD's enabled state and drop stale pins."""
    download_all(downloader, [(i.release, i.output_path) for i in plan.items], jobs)

    for item in plan.items:
        if mod_list.exists(item.mod):
            mod_list.set_version(item.mod, None)
        else:
            mod_list.add(item.mod, enabled=True)
        logger.info("Updated %s: %s -> %s", item.mod, item.current_version, item.new_version)
