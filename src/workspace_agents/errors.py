"""Exception hierarchy for workspace-agents."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


class WorkspaceAgentsError(Exception):
    """Base exception for workspace-agents errors."""
    pass


class ConfigurationError(WorkspaceAgentsError):
    """Bundled manifest or templates are missing or malformed.

    Raised before any filesystem mutation; the CLI reports it and exits
    non-zero.
    """


class MissingTemplateError(ConfigurationError):
    """One or more template ids referenced by the manifest have no body."""

    def __init__(self, template_ids: Iterable[str]):
        self.template_ids = sorted(set(template_ids))
        super().__init__(
            "Template not found: " + ", ".join(self.template_ids)
        )


class PreconditionError(WorkspaceAgentsError):
    """Target root cannot be used (missing, not a directory, not writable)."""

    def __init__(self, path: Path, problem: str):
        self.path = path
        self.problem = problem
        super().__init__(f"{problem}: {path}")


class OperationFailure(WorkspaceAgentsError):
    """A single change-set operation could not be applied.

    Only ever raised inside the applier's per-operation boundary, where it is
    downgraded to a report entry.
    """


__all__ = [
    "ConfigurationError",
    "MissingTemplateError",
    "OperationFailure",
    "PreconditionError",
    "WorkspaceAgentsError",
]
