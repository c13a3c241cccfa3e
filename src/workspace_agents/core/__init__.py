"""Core filesystem inspection helpers for workspace-agents."""

from .prober import (
    Classification,
    TargetState,
    detect_project_name,
    ensure_target_root,
    get_framework_version,
    probe,
    subtree_destination,
)
from .symlinks import (
    SymlinkCheck,
    SymlinkStatus,
    create_symlink,
    is_symlink_supported,
    validate_symlinks,
)
from .vcs import git_mv, is_git_available, is_git_repo

__all__ = [
    "Classification",
    "SymlinkCheck",
    "SymlinkStatus",
    "TargetState",
    "create_symlink",
    "detect_project_name",
    "ensure_target_root",
    "get_framework_version",
    "git_mv",
    "is_git_available",
    "is_git_repo",
    "is_symlink_supported",
    "probe",
    "subtree_destination",
    "validate_symlinks",
]
