"""Applier: execute a change set against the target root.

Operations run strictly in change-set order. A failing operation is logged,
recorded in the :class:`ApplyReport`, and the run continues. Only
preconditions (unusable target root, unresolved template ids) abort, and they
do so before the first operation runs.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Type

from workspace_agents.changeset import (
    AppendGitignoreLines,
    ChangeSet,
    CopySubtree,
    CreateDir,
    CreateFile,
    CreateSymlink,
    MoveTree,
    Operation,
    RewriteTextInPlace,
    SkipFile,
    operation_to_dict,
)
from workspace_agents.core.prober import ensure_target_root
from workspace_agents.core.symlinks import create_symlink
from workspace_agents.core.vcs import git_mv, is_git_repo
from workspace_agents.errors import MissingTemplateError, OperationFailure
from workspace_agents.gitignore_manager import GitignoreManager
from workspace_agents.template.store import TemplateStore

logger = logging.getLogger(__name__)

METHOD_GIT = "git mv"
METHOD_MOVE = "move"


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationOutcome:
    """What happened to one change-set entry."""

    operation: Operation
    status: OutcomeStatus
    detail: str = ""
    method: str | None = None  # MoveTree only: "git mv" or "move"
    changes: int = 0  # RewriteTextInPlace only: substitutions made

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "operation": operation_to_dict(self.operation),
            "status": self.status.value,
            "detail": self.detail,
        }
        if self.method:
            data["method"] = self.method
        if self.changes:
            data["changes"] = self.changes
        return data


@dataclass
class ApplyReport:
    """Per-operation outcomes of one apply run."""

    outcomes: List[OperationOutcome] = field(default_factory=list)

    def _with(self, status: OutcomeStatus) -> List[OperationOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def succeeded(self) -> List[OperationOutcome]:
        return self._with(OutcomeStatus.SUCCEEDED)

    @property
    def skipped(self) -> List[OperationOutcome]:
        return self._with(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> List[OperationOutcome]:
        return self._with(OutcomeStatus.FAILED)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @property
    def git_history_preserved(self) -> bool:
        moves = [o for o in self.succeeded if isinstance(o.operation, MoveTree)]
        return bool(moves) and all(o.method == METHOD_GIT for o in moves)

    def outcome_for(self, operation: Operation) -> OperationOutcome | None:
        for outcome in self.outcomes:
            if outcome.operation == operation:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class Applier:
    """Runs change sets against one target root.

    Args:
        target_root: Project directory the change set was computed for
        store: Template store used to render CreateFile and locate subtrees
        git_enabled: Force git-aware moves on or off; detected when None
    """

    def __init__(self, target_root: Path, store: TemplateStore, git_enabled: bool | None = None):
        self.root = Path(target_root)
        self.store = store
        self._git_enabled = git_enabled
        self._handlers: Dict[Type[Any], Callable[[Any], OperationOutcome]] = {
            SkipFile: self._skip_file,
            CreateDir: self._create_dir,
            CreateFile: self._create_file,
            CreateSymlink: self._create_symlink,
            MoveTree: self._move_tree,
            RewriteTextInPlace: self._rewrite_text,
            AppendGitignoreLines: self._append_gitignore,
            CopySubtree: self._copy_subtree,
        }

    @property
    def git_enabled(self) -> bool:
        if self._git_enabled is None:
            self._git_enabled = is_git_repo(self.root)
            logger.debug("Git working tree at %s: %s", self.root, self._git_enabled)
        return self._git_enabled

    def check_preconditions(self, change_set: ChangeSet) -> None:
        """Fail fast before any mutation.

        Raises:
            PreconditionError: If the target root is unusable
            MissingTemplateError: If a CreateFile names an unknown template
        """
        ensure_target_root(self.root)
        missing = [
            op.template_id
            for op in change_set.of_kind(CreateFile)
            if not self.store.has(op.template_id)
        ]
        if missing:
            raise MissingTemplateError(missing)

    def apply(self, change_set: ChangeSet) -> ApplyReport:
        self.check_preconditions(change_set)

        report = ApplyReport()
        for op in change_set.operations:
            handler = self._handlers[type(op)]
            try:
                outcome = handler(op)
            except (OSError, OperationFailure, subprocess.SubprocessError, UnicodeError, re.error) as exc:
                logger.warning("Failed to apply %s: %s", op.kind, exc)
                outcome = OperationOutcome(op, OutcomeStatus.FAILED, str(exc))
            report.outcomes.append(outcome)

        logger.info(
            "Applied %s change set to %s: %d succeeded, %d skipped, %d failed",
            change_set.mode,
            self.root,
            len(report.succeeded),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _skip_file(self, op: SkipFile) -> OperationOutcome:
        return OperationOutcome(op, OutcomeStatus.SKIPPED, op.reason)

    def _create_dir(self, op: CreateDir) -> OperationOutcome:
        path = self.root / op.path
        if path.is_dir():
            return OperationOutcome(op, OutcomeStatus.SKIPPED, "already exists")
        path.mkdir(parents=True, exist_ok=True)
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED)

    def _create_file(self, op: CreateFile) -> OperationOutcome:
        path = self.root / op.destination
        if path.exists() or path.is_symlink():
            if op.skip_if_exists:
                return OperationOutcome(op, OutcomeStatus.SKIPPED, "already exists")
            if not op.overwrite:
                raise OperationFailure(f"Destination already exists: {op.destination}")

        content = self.store.load_and_render(op.template_id, op.variables)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED)

    def _create_symlink(self, op: CreateSymlink) -> OperationOutcome:
        create_symlink(op.target_path, self.root / op.link_path)
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED, op.fix_reason or "")

    def _move_tree(self, op: MoveTree) -> OperationOutcome:
        source = self.root / op.old_path
        dest = self.root / op.new_path

        if not source.exists() and not source.is_symlink():
            raise OperationFailure(f"Source no longer exists: {op.old_path}")
        if dest.exists():
            raise OperationFailure(f"Destination already exists: {op.new_path}")

        if op.prefer_git_history and self.git_enabled:
            if git_mv(op.old_path, op.new_path, self.root):
                return OperationOutcome(op, OutcomeStatus.SUCCEEDED, method=METHOD_GIT)
            logger.debug("git mv refused %s, falling back to a plain move", op.old_path)

        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(dest))
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED, method=METHOD_MOVE)

    def _rewrite_text(self, op: RewriteTextInPlace) -> OperationOutcome:
        path = self.root / op.path
        if not path.is_file():
            raise OperationFailure(f"File not found: {op.path}")

        original = path.read_text(encoding="utf-8")
        content = original
        total = 0
        for pattern, replacement in op.replacements:
            content, count = re.subn(pattern, replacement, content)
            total += count

        if content == original:
            return OperationOutcome(op, OutcomeStatus.SKIPPED, "no references to update")
        path.write_text(content, encoding="utf-8")
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED, f"{total} references updated", changes=total)

    def _append_gitignore(self, op: AppendGitignoreLines) -> OperationOutcome:
        try:
            manager = GitignoreManager(self.root)
        except ValueError as exc:
            raise OperationFailure(str(exc)) from exc
        result = manager.ensure_entries(list(op.lines))
        if not result.modified:
            return OperationOutcome(op, OutcomeStatus.SKIPPED, "entries already present")
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED, ", ".join(result.entries_added))

    def _copy_subtree(self, op: CopySubtree) -> OperationOutcome:
        dest = self.root / op.destination
        if dest.exists() or dest.is_symlink():
            return OperationOutcome(op, OutcomeStatus.SKIPPED, "already exists")

        source = self.store.subtree(op.source_id)
        if not source.is_dir():
            raise OperationFailure(f"Bundled subtree not found: {op.source_id}")

        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, dest)
        return OperationOutcome(op, OutcomeStatus.SUCCEEDED)


__all__ = [
    "Applier",
    "ApplyReport",
    "METHOD_GIT",
    "METHOD_MOVE",
    "OperationOutcome",
    "OutcomeStatus",
]
