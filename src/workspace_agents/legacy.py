"""Legacy layout tables for upgrading older workspace-agents projects.

Historical context:
- Skills used to live under ``agents/tools/``.
- Machine-local plans used to live in a root-level ``plans-local/``.
- Task documents used to live in a root-level ``tasks/`` directory.

Everything here is data. The prober and the diff engine walk these tables
generically, so adding a migration rule means adding a row.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Pattern, Tuple


@dataclass(frozen=True)
class PathMapping:
    """An old path that should be moved to a new path."""

    old_path: str
    new_path: str


@dataclass(frozen=True)
class TermReplacement:
    """A regex applied to reference files during an upgrade."""

    pattern: Pattern[str]
    replacement: str

    @classmethod
    def compile(cls, pattern: str, replacement: str) -> "TermReplacement":
        return cls(re.compile(pattern), replacement)

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


LEGACY_DIRECTORIES: Tuple[PathMapping, ...] = (
    PathMapping("agents/tools", "agents/skills"),
    PathMapping("plans-local", "agents/plans/local"),
    PathMapping("tasks", "agents/plans"),
)

# Order matters: the full ``agents/tools`` path is rewritten before the bare
# ``tools/`` segment so the result never reads ``agents/agents/skills``.
TERMINOLOGY: Tuple[TermReplacement, ...] = (
    TermReplacement.compile(r"agents/tools", "agents/skills"),
    TermReplacement.compile(r"`tools/`", "`skills/`"),
    TermReplacement.compile(r"(?<![\w-])tools/", "skills/"),
    TermReplacement.compile(r"plans-local", "agents/plans/local"),
)

REFERENCE_FILES: Tuple[str, ...] = ("AGENTS.md", "agents/README.md", "README.md")

LEGACY_FILE_CANDIDATES: Tuple[str, ...] = ("CONTRIBUTING.md", "DEVELOPMENT.md")

LEGACY_FILE_MARKERS: Tuple[str, ...] = ("agents/tools", "plans-local")

LEGACY_CONTAINER = "agents/legacy"

MARKER_PATHS: Tuple[str, ...] = ("agents", "AGENTS.md")

MIGRATION_REPORT_PATH = f"{LEGACY_CONTAINER}/MIGRATION.md"


@dataclass(frozen=True)
class LegacyTables:
    """All fixed upgrade rules, injectable for tests or alternate layouts."""

    directories: Tuple[PathMapping, ...] = LEGACY_DIRECTORIES
    terminology: Tuple[TermReplacement, ...] = TERMINOLOGY
    reference_files: Tuple[str, ...] = REFERENCE_FILES
    legacy_candidates: Tuple[str, ...] = LEGACY_FILE_CANDIDATES
    legacy_markers: Tuple[str, ...] = LEGACY_FILE_MARKERS
    legacy_container: str = LEGACY_CONTAINER
    marker_paths: Tuple[str, ...] = field(default=MARKER_PATHS)


LEGACY_TABLES = LegacyTables()

__all__ = [
    "LEGACY_CONTAINER",
    "LEGACY_DIRECTORIES",
    "LEGACY_FILE_CANDIDATES",
    "LEGACY_FILE_MARKERS",
    "LEGACY_TABLES",
    "LegacyTables",
    "MARKER_PATHS",
    "MIGRATION_REPORT_PATH",
    "PathMapping",
    "REFERENCE_FILES",
    "TERMINOLOGY",
    "TermReplacement",
]
