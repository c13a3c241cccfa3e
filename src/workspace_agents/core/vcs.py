"""
Git helpers
===========

Detection of a git working tree and a history-preserving move primitive.
Every call shells out to ``git`` and reports failure through its return
value rather than raising, so callers can fall back to plain filesystem
operations.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def is_git_available() -> bool:
    """
    Check if git is installed and working.

    Returns:
        True if git is installed and responds to --version, False otherwise.
    """
    if shutil.which("git") is None:
        return False
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


def is_git_repo(path: Path) -> bool:
    """Return True when *path* is inside a git working tree."""
    if not is_git_available():
        return False
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--is-inside-work-tree"],
            cwd=path,
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def git_mv(old_path: str, new_path: str, repo_root: Path) -> bool:
    """Move *old_path* to *new_path* with ``git mv``.

    Paths are relative to *repo_root*. The destination's parent directory is
    created first.

    Returns:
        True when git performed the move, False when it refused (for example
        because the source is untracked) and the caller should fall back.
    """
    (repo_root / new_path).parent.mkdir(parents=True, exist_ok=True)
    try:
        result = subprocess.run(
            ["git", "mv", old_path, new_path],
            cwd=repo_root,
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError) as exc:
        logger.debug("git mv %s -> %s could not run: %s", old_path, new_path, exc)
        return False

    if result.returncode != 0:
        logger.debug("git mv %s -> %s failed: %s", old_path, new_path, result.stderr.strip())
        return False
    return True


__all__ = ["git_mv", "is_git_available", "is_git_repo"]
