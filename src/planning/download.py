"""Planning of plain release downloads that leave the MOD list alone."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List

from constants import Constants
from errors import InvalidTargetError, ModNotOnRegistryError, RegistryError, RegistryUnavailableError
from planning.plans import DownloadItem, DownloadPlan
from planning.progress import ProgressCounter
from versioning.parser import ModSpec

logger = logging.getLogger(__name__)


def plan_download(
    registry,
    specs: Iterable[ModSpec],
    output_dir: Path,
    jobs: int = Constants.DEFAULT_JOBS,
) -> DownloadPlan:
    """Pick the release for each spec and the path it will be saved to.

    Dependencies are not followed; ``name`` and ``name@latest`` select the
    most recently published release.

    Args:
        registry: Object with ``fetch_mod(name) -> ModInfo``.
        specs: Requested MOD specs.
        output_dir: Existing directory the archives are written to.
        jobs: Maximum concurrent registry requests.

    Raises:
        InvalidTargetError: base/expansion requested, the output directory
            is missing, or a target file already exists.
        RegistryUnavailableError: a MOD or release cannot be fetched.
    """
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        raise InvalidTargetError(f"Directory does not exist: {output_dir}", context={"path": str(output_dir)})

    wanted: List[ModSpec] = []
    for spec in specs:
        if spec.mod.is_builtin:
            raise InvalidTargetError(f"Cannot download {spec.mod}: it ships with the game", context={"mod": spec.mod.name})
        if spec not in wanted:
            wanted.append(spec)

    progress = ProgressCounter("Looking up releases", total=len(wanted))

    def resolve(spec: ModSpec) -> DownloadItem:
        try:
            info = registry.fetch_mod(spec.mod.name)
        except ModNotOnRegistryError as exc:
            raise RegistryUnavailableError(spec.mod.name, "not found on the registry", "download") from exc
        except RegistryError as exc:
            raise RegistryUnavailableError(spec.mod.name, exc.message, "download") from exc
        finally:
            progress.advance(spec.mod.name)

        release = info.find_release(spec.version) if spec.version else info.latest_release()
        if release is None:
            wanted_version = str(spec.version) if spec.version else Constants.LATEST
            raise RegistryUnavailableError(
                spec.mod.name, f"Release not found for {spec.mod}@{wanted_version}", "download"
            )
        return DownloadItem(info.mod, release, output_dir / release.file_name)

    with ThreadPoolExecutor(max_workers=max(1, int(jobs)), thread_name_prefix="modgate-download") as pool:
        items = list(pool.map(resolve, wanted))

    for item in items:
        if item.output_path.exists():
            raise InvalidTargetError(f"File already exists: {item.output_path}", context={"path": str(item.output_path)})

    logger.debug("Download plan: %s", ", ".join(i.release.file_name for i in items) or "(empty)")
    return DownloadPlan(items)
