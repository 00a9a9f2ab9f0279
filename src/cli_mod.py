"""MOD subcommands: check, enable, disable, install, uninstall, update, list, download.

The lifecycle ``run_*`` functions load the current state, ask a planner for a
plan, print it and, unless ``--dry-run`` was given, apply it and save the MOD
list. Planner errors propagate to ``modgate.main`` which maps them to exit
codes.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from cli_config import Settings
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import Commands, Constants, ExitCodes
from dependency.builder import build_graph
from dependency.graph import Graph
from dependency.validator import validate
from mods.identity import Mod
from mods.installed import InstalledMod, scan_installed_mods
from mods.mod_list import ModList
from plan_executor import apply_disable, apply_enable, apply_install, apply_uninstall, apply_update, download_all
from planning.disable import plan_disable
from planning.download import plan_download
from planning.enable import plan_enable
from planning.install import plan_install
from planning.uninstall import plan_uninstall
from planning.update import plan_update
from registry.downloader import Downloader
from registry.portal import ModPortalClient
from versioning.parser import parse_mod_spec

logger = logging.getLogger(__name__)


@dataclass
class State:
    """Everything a command needs to know about the current installation."""
    installed_mods: List[InstalledMod]
    mod_list: ModList
    graph: Graph


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        add_file_handler(log_file)
        logger.info("Logging to file: %s", log_file)


def load_state(settings: Settings) -> State:
    """Scan the MOD directory, read the MOD list and build the graph."""
    installed = scan_installed_mods(settings.mod_dir, settings.data_dir)
    mod_list = ModList.load_or_default(settings.mod_list_file)
    graph = build_graph(installed, mod_list)
    if is_debug_enabled(logger):
        logger.debug(
            "State loaded",
            extra=extra_context(
                event="state_loaded",
                component="cli",
                installed=len(installed),
                listed=len(mod_list),
                nodes=len(graph),
            ),
        )
    return State(installed, mod_list, graph)


def _print_list(title: str, items: List[str]) -> None:
    print(title)
    for item in items:
        print(f"  - {item}")


def _save(state: State, settings: Settings) -> None:
    state.mod_list.save(settings.mod_list_file)
    logger.info("Saved %s", settings.mod_list_file)


def _downloader(settings: Settings) -> Downloader:
    return Downloader(settings.portal_url, settings.username, settings.token)


def run_check(args: Any, settings: Settings) -> ExitCodes:
    """Validate the installation and report every finding."""
    state = load_state(settings)
    result = validate(state.graph, state.mod_list, state.installed_mods)

    for issue in result.errors:
        print(f"ERROR: {issue.message}")
    for issue in result.warnings:
        print(f"WARNING: {issue.message}")
    for issue in result.suggestions:
        print(f"SUGGESTION: {issue.message}")

    if not result.is_valid:
        print(f"{len(result.errors)} error(s) found")
        return ExitCodes.VALIDATION_FAILED
    if result.has_warnings and getattr(args, "STRICT", False):
        return ExitCodes.VALIDATION_FAILED
    print(f"All enabled MODs are consistent ({len(state.graph)} installed)")
    return ExitCodes.SUCCESS


def run_enable(args: Any, settings: Settings) -> ExitCodes:
    state = load_state(settings)
    plan = plan_enable(state.graph, [Mod(name) for name in args.MODS])
    if plan.is_empty:
        print("Nothing to enable")
        return ExitCodes.SUCCESS
    _print_list(f"Enabling {len(plan.mods)} MOD(s):", [m.name for m in plan.mods])
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    apply_enable(plan, state.mod_list)
    _save(state, settings)
    return ExitCodes.SUCCESS


def run_disable(args: Any, settings: Settings) -> ExitCodes:
    state = load_state(settings)
    plan = plan_disable(state.graph, [Mod(name) for name in args.MODS], all_mods=args.ALL)
    if plan.is_empty:
        print("Nothing to disable")
        return ExitCodes.SUCCESS
    _print_list(f"Disabling {len(plan.mods)} MOD(s):", [m.name for m in plan.mods])
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    apply_disable(plan, state.mod_list)
    _save(state, settings)
    return ExitCodes.SUCCESS


def run_install(args: Any, settings: Settings) -> ExitCodes:
    state = load_state(settings)
    specs = [parse_mod_spec(token) for token in args.MODS]
    registry = ModPortalClient(settings.portal_url)
    plan = plan_install(state.graph, registry, specs, settings.mod_dir, settings.jobs)

    for warning in plan.warnings:
        print(f"WARNING: {warning}")
    if plan.is_empty:
        print("Nothing to install")
        return ExitCodes.SUCCESS
    _print_list(
        f"Planning {len(plan.installs)} install(s) and {len(plan.enables)} enable(s):",
        [f"{i.operation.value} {i.mod}@{i.version}" for i in plan.items],
    )
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    apply_install(plan, state.mod_list, _downloader(settings), settings.jobs)
    _save(state, settings)
    return ExitCodes.SUCCESS


def run_uninstall(args: Any, settings: Settings) -> ExitCodes:
    state = load_state(settings)
    specs = [parse_mod_spec(token) for token in args.MODS]
    plan = plan_uninstall(state.graph, state.installed_mods, specs, all_mods=args.ALL)
    if plan.is_empty:
        print("Nothing to uninstall")
        return ExitCodes.SUCCESS
    _print_list(f"Uninstalling {len(plan.artifacts)} artifact(s):", [str(a) for a in plan.artifacts])
    if plan.disable_only:
        _print_list("Disabling expansion(s):", [m.name for m in plan.disable_only])
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    try:
        apply_uninstall(plan, state.mod_list)
    finally:
        _save(state, settings)
    return ExitCodes.SUCCESS


def run_update(args: Any, settings: Settings) -> ExitCodes:
    state = load_state(settings)
    registry = ModPortalClient(settings.portal_url)
    plan = plan_update(
        state.installed_mods, registry, settings.mod_dir,
        [Mod(name) for name in args.MODS], settings.jobs,
    )
    if plan.is_empty:
        print("All MODs are up to date")
        return ExitCodes.SUCCESS
    _print_list(
        f"Updating {len(plan.items)} MOD(s):",
        [f"{i.mod}: {i.current_version} -> {i.new_version}" for i in plan.items],
    )
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    apply_update(plan, state.mod_list, _downloader(settings), settings.jobs)
    _save(state, settings)
    return ExitCodes.SUCCESS


def format_mod_list(mod_list: ModList, fmt: str = "plain") -> str:
    """Render MOD list entries as names, CSV or a Markdown table."""
    rows = [
        (mod.name, str(state.enabled).lower(), str(state.version) if state.version else "")
        for mod, state in mod_list
    ]
    if fmt == "csv":
        buffer = io.StringIO()
        export = csv.writer(buffer, lineterminator="\n")
        export.writerow(Constants.LIST_HEADERS)
        export.writerows(rows)
        return buffer.getvalue().rstrip("\n")
    if fmt == "markdown":
        lines = [
            "| " + " | ".join(Constants.LIST_HEADERS) + " |",
            "|" + "|".join("---" for _ in Constants.LIST_HEADERS) + "|",
        ]
        lines.extend("| " + " | ".join(row) + " |" for row in rows)
        return "\n".join(lines)
    return "\n".join(row[0] for row in rows)


def run_list(args: Any, settings: Settings) -> ExitCodes:
    mod_list = ModList.load(settings.mod_list_file)
    print(format_mod_list(mod_list, args.FORMAT))
    return ExitCodes.SUCCESS


def run_download(args: Any, settings: Settings) -> ExitCodes:
    """Fetch releases into ``--output-dir``; the MOD list is not read or written."""
    specs = [parse_mod_spec(token) for token in args.MODS]
    registry = ModPortalClient(settings.portal_url)
    plan = plan_download(registry, specs, Path(args.OUTPUT_DIR).expanduser(), settings.jobs)
    _print_list(f"Downloading {len(plan.items)} release(s):", [str(i.output_path) for i in plan.items])
    if args.DRY_RUN:
        return ExitCodes.SUCCESS
    download_all(_downloader(settings), [(i.release, i.output_path) for i in plan.items], settings.jobs)
    return ExitCodes.SUCCESS


COMMANDS = {
    Commands.CHECK.value: run_check,
    Commands.ENABLE.value: run_enable,
    Commands.DISABLE.value: run_disable,
    Commands.INSTALL.value: run_install,
    Commands.UNINSTALL.value: run_uninstall,
    Commands.UPDATE.value: run_update,
    Commands.LIST.value: run_list,
    Commands.DOWNLOAD.value: run_download,
}
