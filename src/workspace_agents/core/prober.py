"""Structure prober: one read-only pass over the target root.

The prober answers every existence question the diff engine needs and
returns a frozen :class:`TargetState`. Nothing downstream touches the
filesystem to ask "does this exist?" again.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Tuple

from workspace_agents.core.symlinks import SymlinkCheck, SymlinkStatus, validate_symlinks
from workspace_agents.errors import PreconditionError
from workspace_agents.legacy import LEGACY_TABLES, LegacyTables, PathMapping
from workspace_agents.manifest import Manifest

logger = logging.getLogger(__name__)

VERSION_MARKER = re.compile(r"<!-- Workspace Agents v([\d.]+) -->")


class Classification(Enum):
    """How the target root relates to the framework layout."""

    NO_FRAMEWORK = "no_framework"
    CURRENT_LAYOUT = "current_layout"
    LEGACY_LAYOUT = "legacy_layout"


@dataclass(frozen=True)
class TargetState:
    """Existence facts about the target root at probe time.

    ``exists`` uses link-following checks: a dangling symlink is absent from
    ``exists`` and listed in ``broken_symlinks`` instead.
    """

    root: Path
    exists: FrozenSet[str]
    legacy_markers: Tuple[PathMapping, ...]
    classification: Classification
    broken_symlinks: FrozenSet[str] = frozenset()
    symlink_checks: Tuple[SymlinkCheck, ...] = ()
    present_paths: FrozenSet[str] = field(default=frozenset())
    project_name: str = ""
    framework_version: str | None = None

    @property
    def is_legacy(self) -> bool:
        return self.classification is Classification.LEGACY_LAYOUT

    @property
    def has_framework(self) -> bool:
        return self.classification is not Classification.NO_FRAMEWORK

    def has(self, rel_path: str) -> bool:
        """True when *rel_path* was found by the probe (manifest or table path)."""
        return rel_path in self.exists or rel_path in self.present_paths


def ensure_target_root(target_root: Path) -> Path:
    """Validate that *target_root* is a readable, writable directory.

    Raises:
        PreconditionError: If the root is missing, not a directory, or not
            accessible
    """
    if not target_root.exists():
        raise PreconditionError(target_root, "Target root does not exist")
    if not target_root.is_dir():
        raise PreconditionError(target_root, "Target root is not a directory")
    if not os.access(target_root, os.R_OK | os.W_OK | os.X_OK):
        raise PreconditionError(target_root, "Target root is not readable and writable")
    return target_root


def probe(
    target_root: Path,
    manifest: Manifest,
    tables: LegacyTables = LEGACY_TABLES,
) -> TargetState:
    """Inspect *target_root* against *manifest* without mutating anything.

    Args:
        target_root: Project directory; an empty directory is valid
        manifest: Desired layout
        tables: Legacy mapping tables

    Returns:
        TargetState with existence facts and a classification

    Raises:
        PreconditionError: If *target_root* is unusable
    """
    root = ensure_target_root(Path(target_root))

    exists: set[str] = set()
    for rel in (*manifest.directories, *(f.destination for f in manifest.files)):
        if (root / rel).exists():
            exists.add(rel)

    checks = tuple(validate_symlinks(manifest.symlinks, root))
    broken: set[str] = set()
    for check in checks:
        if check.status is SymlinkStatus.BROKEN:
            broken.add(check.link_path)
        elif check.status is not SymlinkStatus.MISSING:
            exists.add(check.link_path)

    # Table paths that the diff engine asks about (legacy moves, reference
    # files, quarantine candidates, subtree destinations).
    present: set[str] = set()
    table_paths = [
        *tables.marker_paths,
        *tables.reference_files,
        *tables.legacy_candidates,
        *(m.old_path for m in tables.directories),
        *(m.new_path for m in tables.directories),
        *(f"{tables.legacy_container}/{Path(c).name}" for c in tables.legacy_candidates),
        *(subtree_destination(name) for name in manifest.bundled_subtree_copies),
        *_parent_dirs(manifest),
    ]
    for rel in table_paths:
        if (root / rel).exists():
            present.add(rel)

    legacy_markers = tuple(
        mapping
        for mapping in tables.directories
        if mapping.old_path in present and mapping.new_path not in present
    )

    if not any(marker in present for marker in tables.marker_paths):
        classification = Classification.NO_FRAMEWORK
    elif legacy_markers:
        classification = Classification.LEGACY_LAYOUT
    else:
        classification = Classification.CURRENT_LAYOUT

    state = TargetState(
        root=root,
        exists=frozenset(exists),
        legacy_markers=legacy_markers,
        classification=classification,
        broken_symlinks=frozenset(broken),
        symlink_checks=checks,
        present_paths=frozenset(present),
        project_name=detect_project_name(root),
        framework_version=get_framework_version(root),
    )
    logger.debug(
        "Probed %s: %s, %d/%d manifest paths present, %d legacy markers",
        root,
        classification.value,
        len(exists),
        len(manifest.directories) + len(manifest.files) + len(manifest.symlinks),
        len(legacy_markers),
    )
    return state


def subtree_destination(source_id: str) -> str:
    """Where a bundled subtree lands inside the target root."""
    return f"agents/skills/{source_id}"


def _parent_dirs(manifest: Manifest) -> list[str]:
    parents: list[str] = []
    for spec in manifest.files:
        parent = Path(spec.destination).parent.as_posix()
        if parent not in (".", "") and parent not in parents:
            parents.append(parent)
    return parents


def detect_project_name(root: Path) -> str:
    """Project name from ``package.json``, then ``pyproject.toml``, then the directory."""
    package_json = root / "package.json"
    if package_json.is_file():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
        except (json.JSONDecodeError, OSError, AttributeError) as exc:
            logger.debug("Cannot read project name from %s: %s", package_json, exc)
        else:
            if isinstance(name, str) and name:
                return name

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        try:
            with pyproject.open("rb") as handle:
                name = tomllib.load(handle).get("project", {}).get("name")
        except (tomllib.TOMLDecodeError, OSError, AttributeError) as exc:
            logger.debug("Cannot read project name from %s: %s", pyproject, exc)
        else:
            if isinstance(name, str) and name:
                return name

    return root.resolve().name


def get_framework_version(root: Path) -> str | None:
    """Version recorded in the ``<!-- Workspace Agents vX.Y.Z -->`` marker of AGENTS.md."""
    agents_md = root / "AGENTS.md"
    if not agents_md.is_file():
        return None
    try:
        content = agents_md.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None
    match = VERSION_MARKER.search(content)
    return match.group(1) if match else None


__all__ = [
    "Classification",
    "TargetState",
    "VERSION_MARKER",
    "detect_project_name",
    "ensure_target_root",
    "get_framework_version",
    "probe",
    "subtree_destination",
]
