"""Change-set operation records.

A change set is the only thing passed from the diff engine to the applier.
Each record is a frozen value; building one never writes to disk.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, Mapping, Tuple, Type, TypeVar, Union


@dataclass(frozen=True)
class CreateDir:
    path: str

    kind: ClassVar[str] = "create_dir"


@dataclass(frozen=True)
class CreateFile:
    """Render ``template_id`` with frozen ``variables`` into ``destination``.

    An existing destination is skipped when ``skip_if_exists`` is set,
    replaced only when ``overwrite`` is set, and otherwise a failure.
    """

    destination: str
    template_id: str
    variables: Mapping[str, str] = field(default_factory=dict)
    skip_if_exists: bool = True
    overwrite: bool = False

    kind: ClassVar[str] = "create_file"

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))


@dataclass(frozen=True)
class SkipFile:
    """No-op marker for a manifest file that already exists."""

    path: str
    reason: str = "already exists"

    kind: ClassVar[str] = "skip_file"


@dataclass(frozen=True)
class CreateSymlink:
    """Create a symlink; ``fix_reason`` is set when repairing an existing link."""

    link_path: str
    target_path: str
    fix_reason: str | None = None

    kind: ClassVar[str] = "create_symlink"

    @property
    def is_fix(self) -> bool:
        return self.fix_reason is not None


@dataclass(frozen=True)
class MoveTree:
    """Move a file or directory; ``quarantine`` marks moves into the legacy container."""

    old_path: str
    new_path: str
    prefer_git_history: bool = True
    quarantine: bool = False

    kind: ClassVar[str] = "move_tree"


@dataclass(frozen=True)
class RewriteTextInPlace:
    """Apply every ``(pattern, replacement)`` pair to ``path``.

    ``replacements`` is the full fixed terminology list; ``matched`` holds the
    subset that matched at diff time and is used for previews only.
    """

    path: str
    replacements: Tuple[Tuple[str, str], ...]
    matched: Tuple[Tuple[str, str], ...] = ()

    kind: ClassVar[str] = "rewrite_text"


@dataclass(frozen=True)
class AppendGitignoreLines:
    lines: Tuple[str, ...]

    kind: ClassVar[str] = "append_gitignore"


@dataclass(frozen=True)
class CopySubtree:
    source_id: str
    destination: str

    kind: ClassVar[str] = "copy_subtree"


Operation = Union[
    CreateDir,
    CreateFile,
    SkipFile,
    CreateSymlink,
    MoveTree,
    RewriteTextInPlace,
    AppendGitignoreLines,
    CopySubtree,
]

OpT = TypeVar("OpT", bound=Operation)

# (singular, plural) labels used in the summary line, in display order.
_SUMMARY_LABELS: Tuple[Tuple[str, str, str], ...] = (
    ("move", "move", "moves"),
    ("rewrite", "modification", "modifications"),
    ("create_dir", "directory", "directories"),
    ("create_file", "file", "files"),
    ("create_symlink", "symlink", "symlinks"),
    ("fix_symlink", "symlink fix", "symlink fixes"),
    ("append_gitignore", "gitignore line", "gitignore lines"),
    ("copy_subtree", "skill", "skills"),
    ("quarantine", "legacy file", "legacy files"),
)


def summary_key(op: Operation) -> str | None:
    """Bucket an operation for the summary; SkipFile counts as nothing."""
    if isinstance(op, SkipFile):
        return None
    if isinstance(op, MoveTree):
        return "quarantine" if op.quarantine else "move"
    if isinstance(op, RewriteTextInPlace):
        return "rewrite"
    if isinstance(op, CreateSymlink):
        return "fix_symlink" if op.is_fix else "create_symlink"
    return op.kind


def operation_to_dict(op: Operation) -> dict[str, Any]:
    data = asdict(op) if not isinstance(op, CreateFile) else {
        "destination": op.destination,
        "template_id": op.template_id,
        "variables": dict(op.variables),
        "skip_if_exists": op.skip_if_exists,
        "overwrite": op.overwrite,
    }
    if isinstance(op, (RewriteTextInPlace, AppendGitignoreLines)):
        data = {k: list(v) if isinstance(v, tuple) else v for k, v in data.items()}
    return {"kind": op.kind, **data}


@dataclass(frozen=True)
class ChangeSet:
    """Ordered operations computed by the diff engine.

    Attributes:
        mode: ``"scaffold"`` or ``"upgrade"``
        operations: Records in the order the applier must run them
    """

    mode: str
    operations: Tuple[Operation, ...] = ()

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def actionable(self) -> Tuple[Operation, ...]:
        return tuple(op for op in self.operations if not isinstance(op, SkipFile))

    @property
    def is_empty(self) -> bool:
        return not self.actionable

    def of_kind(self, op_type: Type[OpT]) -> list[OpT]:
        return [op for op in self.operations if isinstance(op, op_type)]

    def summary(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for op in self.operations:
            key = summary_key(op)
            if key is None:
                continue
            amount = len(op.lines) if isinstance(op, AppendGitignoreLines) else 1
            counts[key] = counts.get(key, 0) + amount
        return counts

    def summary_line(self) -> str:
        counts = self.summary()
        parts = []
        for key, singular, plural in _SUMMARY_LABELS:
            count = counts.get(key, 0)
            if count:
                parts.append(f"{count} {singular if count == 1 else plural}")
        if not parts:
            return "No changes to apply."
        return "Summary: " + ", ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "operations": [operation_to_dict(op) for op in self.operations],
            "summary": self.summary(),
        }


__all__ = [
    "AppendGitignoreLines",
    "ChangeSet",
    "CopySubtree",
    "CreateDir",
    "CreateFile",
    "CreateSymlink",
    "MoveTree",
    "Operation",
    "RewriteTextInPlace",
    "SkipFile",
    "operation_to_dict",
    "summary_key",
]
