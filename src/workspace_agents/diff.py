"""Diff engine: turn a manifest plus probed state into a change set.

Two variants exist. ``diff_scaffold`` is purely additive and runs when no
framework is present (or the caller forces a reset). ``diff_upgrade`` first
moves legacy paths, then rewrites stale references, then adds whatever the
current layout is missing.

Both only read the filesystem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

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
)
from workspace_agents.core.prober import Classification, TargetState, subtree_destination
from workspace_agents.core.symlinks import SymlinkStatus
from workspace_agents.legacy import LEGACY_TABLES, LegacyTables
from workspace_agents.manifest import Manifest

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"


@dataclass(frozen=True)
class DiffOptions:
    """Caller policy passed through from the CLI.

    Attributes:
        force: Overwrite existing files whose manifest entry allows it, recreate symlinks
        skip_symlinks: Never plan symlink operations
        symlinks_supported: Host capability; False drops symlink operations
    """

    force: bool = False
    skip_symlinks: bool = False
    symlinks_supported: bool = True

    @property
    def plan_symlinks(self) -> bool:
        return self.symlinks_supported and not self.skip_symlinks


def plan_changes(
    manifest: Manifest,
    state: TargetState,
    variables: Mapping[str, str],
    options: DiffOptions = DiffOptions(),
    tables: LegacyTables = LEGACY_TABLES,
    reset: bool = False,
) -> ChangeSet:
    """Pick the scaffold or upgrade diff for *state*."""
    if reset or state.classification is Classification.NO_FRAMEWORK:
        return diff_scaffold(manifest, state, variables, options)
    return diff_upgrade(manifest, state, variables, options, tables)


def diff_scaffold(
    manifest: Manifest,
    state: TargetState,
    variables: Mapping[str, str],
    options: DiffOptions = DiffOptions(),
) -> ChangeSet:
    """Additive diff: everything the manifest names that is not there yet.

    Operations are emitted in canonical order: directories, files,
    symlinks, gitignore lines, subtree copies.
    """
    ops: list[Operation] = []

    ops.extend(CreateDir(d) for d in manifest.directories if d not in state.exists)

    for spec in manifest.files:
        if spec.destination not in state.exists:
            ops.append(CreateFile(spec.destination, spec.template_id, variables, spec.skip_if_exists))
        elif options.force and not spec.skip_if_exists:
            ops.append(
                CreateFile(spec.destination, spec.template_id, variables, skip_if_exists=False, overwrite=True)
            )
        elif spec.skip_if_exists:
            ops.append(SkipFile(spec.destination, "already exists"))
        else:
            ops.append(SkipFile(spec.destination, "already exists (use --force to overwrite)"))

    if options.plan_symlinks:
        for check in state.symlink_checks:
            spec = manifest.symlink_for(check.link_path)
            if spec is None:
                continue
            if check.status is SymlinkStatus.MISSING:
                ops.append(CreateSymlink(spec.link_path, spec.target_path))
            elif check.status is SymlinkStatus.BROKEN:
                ops.append(CreateSymlink(spec.link_path, spec.target_path, check.fix_reason))
            elif options.force:
                ops.append(CreateSymlink(spec.link_path, spec.target_path, "forced"))

    gitignore_op = _gitignore_operation(manifest, state.root)
    if gitignore_op is not None:
        ops.append(gitignore_op)

    ops.extend(
        CopySubtree(name, subtree_destination(name))
        for name in manifest.bundled_subtree_copies
        if not state.has(subtree_destination(name))
    )

    change_set = ChangeSet("scaffold", tuple(ops))
    logger.debug("Scaffold diff for %s: %s", state.root, change_set.summary_line())
    return change_set


def diff_upgrade(
    manifest: Manifest,
    state: TargetState,
    variables: Mapping[str, str],
    options: DiffOptions = DiffOptions(),
    tables: LegacyTables = LEGACY_TABLES,
) -> ChangeSet:
    """Migratory diff for a project that already has the framework.

    Every MoveTree comes first, so any later operation that names a moved
    path uses its new location.
    """
    root = state.root
    moves = _order_moves(
        MoveTree(m.old_path, m.new_path, prefer_git_history=True) for m in state.legacy_markers
    )
    quarantines = list(_quarantine_moves(state, tables))
    all_moves = [*moves, *quarantines]
    quarantined = {q.old_path for q in quarantines}

    ops: list[Operation] = [*all_moves]

    for rel in tables.reference_files:
        if not state.has(rel) or rel in quarantined:
            continue
        try:
            content = (root / rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read %s for reference updates: %s", rel, exc)
            continue
        matched = tuple(
            (term.pattern.pattern, term.replacement)
            for term in tables.terminology
            if term.matches(content)
        )
        if matched:
            full = tuple((term.pattern.pattern, term.replacement) for term in tables.terminology)
            ops.append(RewriteTextInPlace(_relocate(rel, all_moves), full, matched))

    ops.extend(
        CreateDir(d)
        for d in manifest.directories
        if d not in state.exists and not _created_by_move(d, all_moves, root, as_dir=True)
    )

    for spec in manifest.files:
        if spec.destination in state.exists or _created_by_move(spec.destination, moves, root):
            continue
        ops.append(CreateFile(spec.destination, spec.template_id, variables, skip_if_exists=True))

    if options.plan_symlinks:
        for check in state.symlink_checks:
            spec = manifest.symlink_for(check.link_path)
            if spec is None or check.status is SymlinkStatus.VALID:
                continue
            if check.status is SymlinkStatus.MISSING:
                ops.append(CreateSymlink(spec.link_path, spec.target_path))
            else:
                ops.append(CreateSymlink(spec.link_path, spec.target_path, check.fix_reason))

    gitignore_op = _gitignore_operation(manifest, root)
    if gitignore_op is not None:
        ops.append(gitignore_op)

    for name in manifest.bundled_subtree_copies:
        dest = subtree_destination(name)
        if not state.has(dest) and not _created_by_move(dest, moves, root):
            ops.append(CopySubtree(name, dest))

    change_set = ChangeSet("upgrade", tuple(ops))
    logger.debug("Upgrade diff for %s: %s", root, change_set.summary_line())
    return change_set


def determine_action(state: TargetState, change_set: ChangeSet) -> tuple[str, str]:
    """Name the action a change set represents and why.

    Returns:
        ``(action, reason)`` where action is ``scaffold``, ``upgrade`` or ``none``
    """
    if change_set.mode == "scaffold":
        if state.has_framework:
            return "scaffold", "Reset requested"
        return "scaffold", "No existing framework detected"

    if change_set.is_empty:
        return "none", "Framework already up to date"
    if state.is_legacy:
        return "upgrade", "Old framework structure detected"

    subtrees = change_set.of_kind(CopySubtree)
    if subtrees:
        return "upgrade", "New skills available: " + ", ".join(op.source_id for op in subtrees)
    files = change_set.of_kind(CreateFile)
    if files:
        count = len(files)
        return "upgrade", f"{count} new template file{'s' if count > 1 else ''} available"
    if change_set.of_kind(CreateSymlink):
        return "upgrade", "Broken or missing symlinks detected"
    return "upgrade", "Framework missing latest features"


def read_gitignore(root: Path) -> str:
    path = root / GITIGNORE
    if not path.is_file():
        return ""
    return path.read_text(encoding="utf-8", errors="ignore")


def _gitignore_operation(manifest: Manifest, root: Path) -> AppendGitignoreLines | None:
    existing = read_gitignore(root)
    missing = tuple(line for line in manifest.gitignore_lines if line not in existing)
    return AppendGitignoreLines(missing) if missing else None


def _order_moves(moves: Iterable[MoveTree]) -> list[MoveTree]:
    """Shallower destinations first, so a parent is moved before a child lands in it."""
    return sorted(moves, key=lambda m: len(Path(m.new_path).parts))


def _quarantine_moves(state: TargetState, tables: LegacyTables) -> Iterable[MoveTree]:
    for rel in tables.legacy_candidates:
        if not state.has(rel):
            continue
        dest = f"{tables.legacy_container}/{Path(rel).name}"
        if state.has(dest):
            continue
        try:
            content = (state.root / rel).read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            logger.warning("Cannot read %s for legacy detection: %s", rel, exc)
            continue
        if any(marker in content for marker in tables.legacy_markers):
            yield MoveTree(rel, dest, prefer_git_history=True, quarantine=True)


def _relocate(rel: str, moves: Sequence[MoveTree]) -> str:
    """Path of *rel* after all *moves* have run."""
    for move in moves:
        if rel == move.old_path:
            rel = move.new_path
        elif rel.startswith(move.old_path + "/"):
            rel = move.new_path + rel[len(move.old_path):]
    return rel


def _created_by_move(rel: str, moves: Sequence[MoveTree], root: Path, as_dir: bool = False) -> bool:
    """True when a pending move will put something at *rel*.

    For directories, ancestors of a move destination also count, since the
    move creates them.
    """
    for move in moves:
        if rel == move.new_path:
            return True
        if rel.startswith(move.new_path + "/"):
            inner = rel[len(move.new_path) + 1:]
            if (root / move.old_path / inner).exists():
                return True
        if as_dir and move.new_path.startswith(rel + "/"):
            return True
    return False


__all__ = [
    "DiffOptions",
    "determine_action",
    "diff_scaffold",
    "diff_upgrade",
    "plan_changes",
    "read_gitignore",
]
