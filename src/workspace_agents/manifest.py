"""Declarative description of the workspace-agents target layout.

The manifest ships as ``templates/manifest.json`` and has this shape::

    {
      "directories": ["agents", "agents/skills"],
      "files": [{"dest": "AGENTS.md", "template": "AGENTS.md.template", "skipIfExists": true}],
      "symlinks": [{"link": ".claude/skills", "target": "../agents/skills"}],
      "gitignoreAppend": ["agents/plans/local/"],
      "skillsToCopy": ["persona-creator"]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Tuple

from workspace_agents.errors import ConfigurationError, MissingTemplateError

if TYPE_CHECKING:
    from workspace_agents.template.store import TemplateStore

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"


@dataclass(frozen=True)
class FileSpec:
    """A template rendered to a destination inside the target root."""

    destination: str
    template_id: str
    skip_if_exists: bool = True


@dataclass(frozen=True)
class SymlinkSpec:
    """A symlink whose target is relative to the link's own directory."""

    link_path: str
    target_path: str


@dataclass(frozen=True)
class Manifest:
    """Desired target layout. Loaded once per invocation, never mutated."""

    directories: Tuple[str, ...] = ()
    files: Tuple[FileSpec, ...] = ()
    symlinks: Tuple[SymlinkSpec, ...] = ()
    gitignore_lines: Tuple[str, ...] = ()
    bundled_subtree_copies: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _ensure_unique("file destination", [f.destination for f in self.files])
        _ensure_unique("symlink path", [s.link_path for s in self.symlinks])

    def file_for(self, destination: str) -> FileSpec | None:
        for spec in self.files:
            if spec.destination == destination:
                return spec
        return None

    def symlink_for(self, link_path: str) -> SymlinkSpec | None:
        for spec in self.symlinks:
            if spec.link_path == link_path:
                return spec
        return None

    def template_ids(self) -> list[str]:
        return [spec.template_id for spec in self.files]

    def validate_templates(self, store: "TemplateStore") -> None:
        """Fail fast when any file spec names a template the store lacks.

        Raises:
            MissingTemplateError: listing every unresolved template id
        """
        missing = [tid for tid in self.template_ids() if not store.has(tid)]
        if missing:
            raise MissingTemplateError(missing)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        """Build a manifest from its JSON form.

        Raises:
            ConfigurationError: If a required key is absent or malformed
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Manifest must be a JSON object")

        for key in ("directories", "files"):
            if key not in data:
                raise ConfigurationError(f"Manifest is missing required field '{key}'")

        try:
            directories = tuple(_normalize(d) for d in data["directories"])
            files = tuple(
                FileSpec(
                    destination=_normalize(entry["dest"]),
                    template_id=_require_str(entry["template"]),
                    skip_if_exists=bool(entry.get("skipIfExists", True)),
                )
                for entry in data["files"]
            )
            symlinks = tuple(
                SymlinkSpec(link_path=_normalize(entry["link"]), target_path=_require_str(entry["target"]))
                for entry in data.get("symlinks", [])
            )
            gitignore_lines = tuple(
                dict.fromkeys(_require_str(line) for line in data.get("gitignoreAppend", []))
            )
            subtrees = tuple(_require_str(name) for name in data.get("skillsToCopy", []))
        except (KeyError, TypeError) as exc:
            raise ConfigurationError(f"Malformed manifest entry: {exc}") from exc

        return cls(
            directories=directories,
            files=files,
            symlinks=symlinks,
            gitignore_lines=gitignore_lines,
            bundled_subtree_copies=subtrees,
        )


def load_manifest(path: Path) -> Manifest:
    """Load the manifest JSON at *path*.

    Args:
        path: Path to ``manifest.json`` or to the directory containing it

    Returns:
        Parsed Manifest

    Raises:
        ConfigurationError: If the file is missing, not JSON, or malformed
    """
    if path.is_dir():
        path = path / MANIFEST_FILENAME

    if not path.is_file():
        raise ConfigurationError(f"Template manifest not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read template manifest {path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc

    manifest = Manifest.from_dict(data)
    logger.debug(
        "Loaded manifest %s: %d directories, %d files, %d symlinks",
        path,
        len(manifest.directories),
        len(manifest.files),
        len(manifest.symlinks),
    )
    return manifest


def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"Malformed manifest entry: expected a string, got {value!r}")
    return value


def _normalize(rel_path: Any) -> str:
    return _require_str(rel_path).replace("\\", "/").rstrip("/")


def _ensure_unique(label: str, values: list[str]) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise ConfigurationError(f"Duplicate {label} in manifest: {value}")
        seen.add(value)


__all__ = ["FileSpec", "MANIFEST_FILENAME", "Manifest", "SymlinkSpec", "load_manifest"]
