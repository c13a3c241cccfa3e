"""
GitignoreManager module for keeping workspace-agents entries in .gitignore.

Entries are appended under a single marker comment at the end of the file.
Existing content is never rewritten, so everything before the appended block
stays byte-for-byte identical.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

GITIGNORE_MARKER = "# Workspace Agents"


@dataclass
class ProtectionResult:
    """Result of a gitignore update."""

    modified: bool
    """Whether .gitignore was modified"""

    entries_added: List[str] = field(default_factory=list)
    """New entries added to .gitignore"""

    entries_skipped: List[str] = field(default_factory=list)
    """Entries already present in .gitignore"""


class GitignoreManager:
    """Manages workspace-agents entries in a project's .gitignore."""

    def __init__(self, project_path: Path, marker: str = GITIGNORE_MARKER):
        """
        Initialize GitignoreManager with project root path.

        Args:
            project_path: Root directory of the project
            marker: Header comment written above appended entries

        Raises:
            ValueError: If project_path doesn't exist or isn't a directory
        """
        if not isinstance(project_path, Path):
            project_path = Path(project_path)

        if not project_path.exists():
            raise ValueError(f"Project path does not exist: {project_path}")

        if not project_path.is_dir():
            raise ValueError(f"Project path is not a directory: {project_path}")

        self.project_path = project_path
        self.gitignore_path = project_path / ".gitignore"
        self.marker = marker

    def read(self) -> str:
        if not self.gitignore_path.exists():
            return ""
        with open(self.gitignore_path, encoding="utf-8", newline="") as handle:
            return handle.read()

    def missing_entries(self, entries: Iterable[str]) -> List[str]:
        """Entries not yet present as a line of .gitignore, deduplicated in order."""
        existing = {line.strip() for line in self.read().splitlines()}
        missing: List[str] = []
        for entry in entries:
            if entry.strip() not in existing and entry not in missing:
                missing.append(entry)
        return missing

    def ensure_entries(self, entries: List[str]) -> ProtectionResult:
        """
        Append any of *entries* not already in .gitignore.

        Args:
            entries: List of gitignore patterns to add

        Returns:
            ProtectionResult describing what was added and what was skipped
        """
        entries = list(dict.fromkeys(entries))
        if not entries:
            return ProtectionResult(modified=False)

        content = self.read()
        missing = self.missing_entries(entries)
        skipped = [entry for entry in entries if entry not in missing]
        if not missing:
            return ProtectionResult(modified=False, entries_skipped=skipped)

        line_ending = self._detect_line_ending(content)
        block: List[str] = []
        if self.marker not in {line.strip() for line in content.splitlines()}:
            block.append(self.marker)
        block.extend(missing)

        prefix = ""
        if content and not content.endswith(("\n", "\r")):
            prefix = line_ending

        with open(self.gitignore_path, "a", encoding="utf-8", newline="") as handle:
            handle.write(prefix + line_ending.join(block) + line_ending)

        logger.debug("Appended %d entries to %s", len(missing), self.gitignore_path)
        return ProtectionResult(modified=True, entries_added=missing, entries_skipped=skipped)

    def _detect_line_ending(self, content: str) -> str:
        """
        Detect and return the line ending style used in content.

        Args:
            content: File content to analyze

        Returns:
            Line ending string ('\r\n' for Windows, '\n' for Unix/Mac);
            the platform default for an empty file
        """
        if not content:
            return os.linesep
        if '\r\n' in content:
            return '\r\n'
        return '\n'


__all__ = ["GITIGNORE_MARKER", "GitignoreManager", "ProtectionResult"]
