"""Symlink creation and validation for manifest symlink specs."""

from __future__ import annotations

import logging
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from workspace_agents.manifest import SymlinkSpec

logger = logging.getLogger(__name__)

NOT_A_SYMLINK = "(not a symlink)"


class SymlinkStatus(Enum):
    """Health of a manifest symlink inside the target root."""

    VALID = "valid"
    MISSING = "missing"
    BROKEN = "broken"  # Link exists but its target does not
    WRONG_TARGET = "wrong_target"  # Link points elsewhere, or path is not a link


@dataclass(frozen=True)
class SymlinkCheck:
    """Result of validating one symlink spec."""

    link_path: str
    expected: str
    status: SymlinkStatus
    actual: str | None = None

    @property
    def needs_fix(self) -> bool:
        return self.status in (SymlinkStatus.BROKEN, SymlinkStatus.WRONG_TARGET)

    @property
    def fix_reason(self) -> str:
        if self.status is SymlinkStatus.BROKEN:
            return "broken link"
        if self.status is SymlinkStatus.WRONG_TARGET:
            return f"wrong target ({self.actual})"
        return ""


@lru_cache(maxsize=1)
def is_symlink_supported() -> bool:
    """Check whether this host can create symlinks.

    POSIX hosts always can. On Windows, symlinks need developer mode or an
    elevated shell, so a throwaway link is created in a temp directory.
    """
    if sys.platform != "win32":
        return True

    test_dir = Path(tempfile.mkdtemp(prefix="symlink-test-"))
    try:
        target = test_dir / "test-target"
        target.write_text("test", encoding="utf-8")
        try:
            os.symlink(target, test_dir / "test-link")
        except OSError:
            return False
        return True
    finally:
        shutil.rmtree(test_dir, ignore_errors=True)


def check_symlink(spec: SymlinkSpec, root: Path) -> SymlinkCheck:
    """Classify the link at ``root / spec.link_path``.

    ``Path.exists()`` follows links, so a dangling link reports False there
    while ``is_symlink()`` still reports True; that pair separates
    MISSING from BROKEN.
    """
    link = root / spec.link_path

    if not link.exists():
        if link.is_symlink():
            return SymlinkCheck(spec.link_path, spec.target_path, SymlinkStatus.BROKEN, os.readlink(link))
        return SymlinkCheck(spec.link_path, spec.target_path, SymlinkStatus.MISSING)

    if not link.is_symlink():
        return SymlinkCheck(spec.link_path, spec.target_path, SymlinkStatus.WRONG_TARGET, NOT_A_SYMLINK)

    actual = os.readlink(link)
    if _same_target(actual, spec.target_path):
        return SymlinkCheck(spec.link_path, spec.target_path, SymlinkStatus.VALID, actual)
    return SymlinkCheck(spec.link_path, spec.target_path, SymlinkStatus.WRONG_TARGET, actual)


def validate_symlinks(specs: Iterable[SymlinkSpec], root: Path) -> list[SymlinkCheck]:
    return [check_symlink(spec, root) for spec in specs]


def _same_target(actual: str, expected: str) -> bool:
    return actual.replace("\\", "/").rstrip("/") == expected.replace("\\", "/").rstrip("/")


def remove_link_path(link: Path) -> None:
    """Remove a file, symlink, or empty directory at *link*.

    Raises:
        OSError: If *link* is a non-empty directory or cannot be removed
    """
    if link.is_symlink() or link.is_file():
        link.unlink()
    elif link.is_dir():
        link.rmdir()


def create_symlink(target: str, link: Path) -> None:
    """Create *link* pointing at *target*, replacing whatever is there.

    The removal and the creation run back to back with nothing in between.

    Raises:
        OSError: If the link cannot be created (e.g. Windows without
            developer mode)
    """
    link.parent.mkdir(parents=True, exist_ok=True)
    resolved = (link.parent / target).resolve()
    target_is_dir = resolved.is_dir()

    remove_link_path(link)
    os.symlink(target, link, target_is_directory=target_is_dir)
    logger.debug("Created symlink %s -> %s", link, target)


__all__ = [
    "NOT_A_SYMLINK",
    "SymlinkCheck",
    "SymlinkStatus",
    "check_symlink",
    "create_symlink",
    "is_symlink_supported",
    "remove_link_path",
    "validate_symlinks",
]
