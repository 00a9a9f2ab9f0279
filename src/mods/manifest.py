"""Reading of ``info.json`` MOD manifests from files, directories and ZIPs."""

from __future__ import annotations

import json
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from constants import Constants
from errors import ManifestError, VersionParseError
from mods.identity import Mod
from versioning.models import ModVersion
from versioning.parser import DependencyEntry, parse_dependencies

logger = logging.getLogger(__name__)

INFO_JSON_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["name", "version"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "version": {"type": "string"},
        "title": {"type": "string"},
        "author": {"type": "string"},
        "factorio_version": {"type": "string"},
        "dependencies": {"type": "array", "items": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class InfoJson:
    """Parsed manifest of a single MOD artifact."""
    name: str
    version: ModVersion
    title: str = ""
    author: str = ""
    factorio_version: Optional[str] = None
    dependencies: List[DependencyEntry] = field(default_factory=list)

    @property
    def mod(self) -> Mod:
        return Mod(self.name)

    @classmethod
    def from_dict(cls, data: Any, source: str = "<memory>") -> "InfoJson":
        """Validate and convert a decoded manifest.

        Raises:
            ManifestError: when the document fails schema validation or the
                version is not a valid triple.
        """
        try:
            jsonschema.validate(instance=data, schema=INFO_JSON_SCHEMA)
        except jsonschema.ValidationError as exc:
            raise ManifestError(
                f"Invalid {Constants.INFO_JSON_FILE} in {source}: {exc.message}",
                context={"source": source},
            ) from exc
        try:
            version = ModVersion.from_string(data["version"])
        except VersionParseError as exc:
            raise ManifestError(
                f"Invalid version in {source}: {data['version']!r}", context={"source": source}
            ) from exc
        return cls(
            name=data["name"],
            version=version,
            title=data.get("title", ""),
            author=data.get("author", ""),
            factorio_version=data.get("factorio_version"),
            dependencies=parse_dependencies(data.get("dependencies") or [], owner=data["name"]),
        )

    @classmethod
    def from_json(cls, text: str, source: str = "<memory>") -> "InfoJson":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ManifestError(f"Malformed JSON in {source}: {exc}", context={"source": source}) from exc
        return cls.from_dict(data, source)

    @classmethod
    def from_file(cls, path: Path) -> "InfoJson":
        """Read an unpacked manifest file."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"Cannot read {path}: {exc}", context={"source": str(path)}) from exc
        return cls.from_json(text, str(path))

    @classmethod
    def from_zip(cls, path: Path) -> "InfoJson":
        """Read the manifest from the archive's top-level directory."""
        try:
            with zipfile.ZipFile(path) as archive:
                candidates = [
                    n for n in archive.namelist()
                    if n.count("/") == 1 and n.endswith("/" + Constants.INFO_JSON_FILE)
                ]
                if not candidates:
                    raise ManifestError(
                        f"No {Constants.INFO_JSON_FILE} found in {path}", context={"source": str(path)}
                    )
                text = archive.read(candidates[0]).decode("utf-8")
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as exc:
            raise ManifestError(f"Cannot read archive {path}: {exc}", context={"source": str(path)}) from exc
        return cls.from_json(text, str(path))
