"""Runtime settings resolved from defaults, YAML config, environment and CLI.

Precedence, lowest to highest: built-in defaults, the YAML config file,
``MODGATE_*`` environment variables, command-line flags.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from constants import Constants
from errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""
    mod_dir: Path = Path(".")
    data_dir: Optional[Path] = None
    mod_list_path: Optional[Path] = None
    portal_url: str = Constants.REGISTRY_URL
    username: Optional[str] = None
    token: Optional[str] = None
    jobs: int = Constants.DEFAULT_JOBS

    @property
    def mod_list_file(self) -> Path:
        return self.mod_list_path or (self.mod_dir / Constants.MOD_LIST_FILE)


_PATH_KEYS = ("mod_dir", "data_dir", "mod_list_path")

# YAML key / environment suffix -> Settings field
_ALIASES = {
    "mod_dir": "mod_dir",
    "data_dir": "data_dir",
    "mod_list": "mod_list_path",
    "mod_list_path": "mod_list_path",
    "portal_url": "portal_url",
    "username": "username",
    "token": "token",
    "jobs": "jobs",
}


def _coerce(key: str, value: Any) -> Any:
    if value is None:
        return None
    if key in _PATH_KEYS:
        return Path(os.path.expanduser(str(value)))
    if key == "jobs":
        try:
            jobs = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid jobs value: {value!r}", context={"key": key}) from exc
        if jobs < 1:
            raise ConfigError(f"jobs must be at least 1, got {jobs}", context={"key": key})
        return jobs
    return str(value)


def _normalize(raw: Mapping[str, Any], source: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        target = _ALIASES.get(str(key).lower().replace("-", "_"))
        if target is None:
            logger.warning("Ignoring unknown setting %r in %s", key, source)
            continue
        values[target] = _coerce(target, value)
    return values


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load settings from a YAML file.

    Keys may sit at the document root or under a top-level ``modgate:``
    mapping. A missing default file yields no settings; a missing file that
    was asked for explicitly is an error.

    Raises:
        ConfigError: unreadable file, invalid YAML, or a non-mapping document.
    """
    explicit = path is not None
    config_path = Path(os.path.expanduser(path or Constants.DEFAULT_CONFIG_FILE))
    if not config_path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}", context={"path": str(config_path)})
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {config_path}: {exc}", context={"path": str(config_path)}) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}", context={"path": str(config_path)}) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must be a mapping", context={"path": str(config_path)})
    section = data.get(Constants.CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(
            f"'{Constants.CONFIG_SECTION}' in {config_path} must be a mapping", context={"path": str(config_path)}
        )
    logger.debug("Loaded config from %s", config_path)
    return _normalize(section, str(config_path))


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Settings taken from ``MODGATE_*`` environment variables."""
    environ = os.environ if environ is None else environ
    raw = {}
    for name, value in environ.items():
        if not name.startswith(Constants.ENV_PREFIX) or value == "":
            continue
        key = name[len(Constants.ENV_PREFIX):].lower()
        if key in _ALIASES:
            raw[key] = value
    return _normalize(raw, "environment")


def cli_overrides(args: Any) -> Dict[str, Any]:
    """Settings given as command-line flags (None means not given)."""
    raw = {
        "mod_dir": getattr(args, "MOD_DIR", None),
        "data_dir": getattr(args, "DATA_DIR", None),
        "mod_list": getattr(args, "MOD_LIST", None),
        "portal_url": getattr(args, "PORTAL_URL", None),
        "jobs": getattr(args, "JOBS", None),
    }
    return _normalize({k: v for k, v in raw.items() if v is not None}, "command line")


def resolve_settings(args: Any = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Merge every settings source into a ``Settings``.

    Raises:
        ConfigError
    """
    environ = os.environ if environ is None else environ
    config_path = getattr(args, "CONFIG", None) or environ.get(Constants.ENV_CONFIG) or None

    merged: Dict[str, Any] = {}
    merged.update(load_config_file(config_path))
    merged.update(env_overrides(environ))
    if args is not None:
        merged.update(cli_overrides(args))

    known = {f.name for f in fields(Settings)}
    settings = replace(Settings(), **{k: v for k, v in merged.items() if k in known})
    logger.debug("MOD directory: %s, MOD list: %s", settings.mod_dir, settings.mod_list_file)
    return settings
