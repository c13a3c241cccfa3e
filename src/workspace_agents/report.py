"""Migration report written after an upgrade that moved or rewrote files.

The report is an ordinary CreateFile operation: the tables are rendered to
Markdown here, frozen into the record's variables, and substituted into the
bundled ``MIGRATION.md.template`` by the applier.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from workspace_agents.applier import ApplyReport, METHOD_GIT, OperationOutcome, OutcomeStatus
from workspace_agents.changeset import ChangeSet, CreateFile, MoveTree, RewriteTextInPlace
from workspace_agents.legacy import MIGRATION_REPORT_PATH

MIGRATION_TEMPLATE_ID = "MIGRATION.md.template"


def needs_migration_report(change_set: ChangeSet) -> bool:
    """Only upgrades that move or rewrite something get a report."""
    return change_set.mode == "upgrade" and any(
        isinstance(op, (MoveTree, RewriteTextInPlace)) for op in change_set.operations
    )


def _table(headers: Iterable[str], rows: list[list[str]], empty: str) -> str:
    if not rows:
        return f"*{empty}*"
    headers = list(headers)
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("---" for _ in headers) + "|",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)


def _moves(report: ApplyReport, quarantine: bool) -> list[OperationOutcome]:
    return [
        o
        for o in report.succeeded
        if isinstance(o.operation, MoveTree) and o.operation.quarantine == quarantine
    ]


def _rollback_section(report: ApplyReport) -> str:
    moves = [o for o in report.succeeded if isinstance(o.operation, MoveTree)]
    lines = [
        "### Before Committing",
        "",
        "If you haven't committed yet, you can reset:",
        "",
        "```bash",
        "git reset --hard HEAD",
        "```",
        "",
        "### After Committing",
        "",
        "```bash",
        "git log --oneline",
        "git revert <commit-hash>",
        "```",
    ]
    if moves:
        lines += ["", "### Manual Rollback", "", "```bash"]
        for outcome in reversed(moves):
            op = outcome.operation
            verb = "git mv" if outcome.method == METHOD_GIT else "mv"
            lines.append(f'{verb} "{op.new_path}" "{op.old_path}"')
        lines.append("```")
    return "\n".join(lines)


def build_migration_report(
    change_set: ChangeSet,
    report: ApplyReport,
    variables: Mapping[str, str],
) -> CreateFile:
    """Return the CreateFile that writes ``agents/legacy/MIGRATION.md``."""
    directory_moves = _moves(report, quarantine=False)
    quarantined = _moves(report, quarantine=True)
    rewrites = [
        o
        for o in report.outcomes
        if isinstance(o.operation, RewriteTextInPlace) and o.status is OutcomeStatus.SUCCEEDED
    ]

    move_rows = [
        [f"`{o.operation.old_path}`", f"`{o.operation.new_path}`", o.method or ""]
        for o in directory_moves
    ]
    rewrite_rows = [[f"`{o.operation.path}`", str(o.changes)] for o in rewrites]
    legacy_rows = [[f"`{o.operation.old_path}`", f"`{o.operation.new_path}`"] for o in quarantined]
    failure_rows = [[f"`{_describe(o)}`", o.detail] for o in report.failed]

    report_vars = dict(variables)
    report_vars.update(
        {
            "STATUS": "Complete" if not report.has_failures else "Complete with warnings",
            "MOVE_COUNT": str(len(directory_moves)),
            "REWRITE_COUNT": str(len(rewrites)),
            "REFERENCE_COUNT": str(sum(o.changes for o in rewrites)),
            "LEGACY_COUNT": str(len(quarantined)),
            "FAILURE_COUNT": str(len(report.failed)),
            "GIT_HISTORY": "Yes" if report.git_history_preserved else "No",
            "MOVES_TABLE": _table(["Old Path", "New Path", "Method"], move_rows, "No directory migrations were needed."),
            "REWRITES_TABLE": _table(["File", "Changes"], rewrite_rows, "No reference updates were needed."),
            "LEGACY_TABLE": _table(["Original Path", "Legacy Path"], legacy_rows, "No legacy files were moved."),
            "FAILURES_TABLE": _table(["Operation", "Reason"], failure_rows, "No operations failed."),
            "ROLLBACK": _rollback_section(report),
        }
    )
    return CreateFile(
        MIGRATION_REPORT_PATH, MIGRATION_TEMPLATE_ID, report_vars, skip_if_exists=False, overwrite=True
    )


def _describe(outcome: OperationOutcome) -> str:
    op = outcome.operation
    for attr in ("path", "destination", "link_path", "old_path", "source_id"):
        value = getattr(op, attr, None)
        if value:
            return f"{op.kind} {value}"
    return op.kind


__all__ = ["MIGRATION_TEMPLATE_ID", "build_migration_report", "needs_migration_report"]
