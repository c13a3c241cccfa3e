from __future__ import annotations

import io

from rich.console import Console

from workspace_agents.applier import ApplyReport, OperationOutcome, OutcomeStatus
from workspace_agents.changeset import ChangeSet, CreateDir, CreateSymlink, MoveTree, RewriteTextInPlace, SkipFile
from workspace_agents.cli.ui import format_operation, print_apply_report, print_change_set


def _console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False, width=200)


def test_format_labels():
    assert "CREATE DIR" in format_operation(CreateDir("agents"))
    assert "FIX LINK" in format_operation(CreateSymlink("CLAUDE.md", "AGENTS.md", "broken link"))
    assert "LEGACY" in format_operation(MoveTree("CONTRIBUTING.md", "agents/legacy/CONTRIBUTING.md", quarantine=True))
    rewrite = format_operation(RewriteTextInPlace("AGENTS.md", (("a", "b"), ("c", "d")), (("a", "b"),)))
    assert "- a" in rewrite
    assert "- c" not in rewrite


def test_change_set_preview_ends_with_summary():
    console = _console()
    print_change_set(ChangeSet("scaffold", (CreateDir("agents"), SkipFile("AGENTS.md"))), console)
    text = console.file.getvalue()
    assert "SKIP" in text
    assert text.strip().splitlines()[-1] == "Summary: 1 directory"


def test_apply_report_lists_failures():
    console = _console()
    failed = OperationOutcome(CreateSymlink("CLAUDE.md", "AGENTS.md"), OutcomeStatus.FAILED, "not permitted")
    ok = OperationOutcome(CreateDir("agents"), OutcomeStatus.SUCCEEDED)

    print_apply_report(ApplyReport([ok, failed]), "scaffold", console)

    text = console.file.getvalue()
    assert "Failed operations" in text
    assert "not permitted" in text
    assert "1 succeeded, 0 skipped, 1 failed" in text
