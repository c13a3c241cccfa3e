from __future__ import annotations

import os
from pathlib import Path

import pytest

from workspace_agents import applier as applier_module
from workspace_agents.applier import METHOD_MOVE, Applier, OutcomeStatus
from workspace_agents.changeset import (
    AppendGitignoreLines,
    ChangeSet,
    CopySubtree,
    CreateDir,
    CreateFile,
    CreateSymlink,
    MoveTree,
    RewriteTextInPlace,
    SkipFile,
)
from workspace_agents.core.prober import probe
from workspace_agents.diff import diff_scaffold, diff_upgrade, plan_changes
from workspace_agents.errors import MissingTemplateError, PreconditionError
from workspace_agents.legacy import TERMINOLOGY
from workspace_agents.manifest import Manifest
from workspace_agents.template import TemplateStore

FULL_TERMINOLOGY = tuple((term.pattern.pattern, term.replacement) for term in TERMINOLOGY)


@pytest.fixture()
def applier(project: Path, store: TemplateStore) -> Applier:
    return Applier(project, store, git_enabled=False)


def test_scaffold_then_rescaffold_is_noop(project: Path, manifest: Manifest, store: TemplateStore, variables):
    first = plan_changes(manifest, probe(project, manifest), variables)
    report = Applier(project, store, git_enabled=False).apply(first)

    assert not report.has_failures
    assert (project / "agents" / "plans").is_dir()
    assert (project / "AGENTS.md").read_text(encoding="utf-8") == "# demo\n\nCreated 2024-01-02\n"
    assert os.readlink(project / "CLAUDE.md") == "AGENTS.md"
    assert (project / "agents" / "skills" / "demo" / "SKILL.md").is_file()

    state = probe(project, manifest)
    second = diff_scaffold(manifest, state, variables)
    assert second.is_empty
    second_report = Applier(project, store, git_enabled=False).apply(second)
    assert second_report.succeeded == []
    assert second_report.failed == []
    assert all(o.status is OutcomeStatus.SKIPPED for o in second_report.outcomes)

    assert plan_changes(manifest, state, variables).is_empty


def test_existing_file_left_untouched(project: Path, store: TemplateStore, variables):
    manifest = Manifest.from_dict(
        {"directories": ["agents"], "files": [{"dest": "AGENTS.md", "template": "agents-tmpl"}]}
    )
    (project / "AGENTS.md").write_text("# Existing", encoding="utf-8")

    report = Applier(project, store, git_enabled=False).apply(
        diff_scaffold(manifest, probe(project, manifest), variables)
    )

    assert (project / "AGENTS.md").read_text(encoding="utf-8") == "# Existing"
    assert (project / "agents").is_dir()
    assert [o.status for o in report.outcomes] == [OutcomeStatus.SUCCEEDED, OutcomeStatus.SKIPPED]


def test_create_file_rechecks_skip_flag_at_apply_time(applier: Applier, project: Path, variables):
    (project / "AGENTS.md").write_text("raced", encoding="utf-8")
    report = applier.apply(ChangeSet("scaffold", (CreateFile("AGENTS.md", "agents-tmpl", variables),)))
    assert report.outcomes[0].status is OutcomeStatus.SKIPPED
    assert (project / "AGENTS.md").read_text(encoding="utf-8") == "raced"


def test_create_file_overwrites_when_forced(applier: Applier, project: Path, variables):
    (project / "agents").mkdir()
    (project / "agents" / "README.md").write_text("old", encoding="utf-8")
    op = CreateFile("agents/README.md", "readme-tmpl", variables, skip_if_exists=False, overwrite=True)

    report = applier.apply(ChangeSet("scaffold", (op,)))

    assert report.outcomes[0].status is OutcomeStatus.SUCCEEDED
    assert (project / "agents" / "README.md").read_text(encoding="utf-8") == "Agents index for demo\n"


def test_create_file_fails_when_destination_appears_without_force(applier: Applier, project: Path, variables):
    (project / "agents").mkdir()
    (project / "agents" / "README.md").write_text("user content", encoding="utf-8")
    op = CreateFile("agents/README.md", "readme-tmpl", variables, skip_if_exists=False)

    report = applier.apply(ChangeSet("scaffold", (op, CreateDir("agents/plans"))))

    assert report.outcomes[0].status is OutcomeStatus.FAILED
    assert "already exists" in report.outcomes[0].detail
    assert report.outcomes[1].status is OutcomeStatus.SUCCEEDED
    assert (project / "agents" / "README.md").read_text(encoding="utf-8") == "user content"


def test_legacy_directory_moved_without_git(project: Path, manifest: Manifest, store: TemplateStore, variables):
    tools = project / "agents" / "tools"
    tools.mkdir(parents=True)
    (tools / "helper.md").write_text("helper", encoding="utf-8")

    change_set = diff_upgrade(manifest, probe(project, manifest), variables)
    report = Applier(project, store, git_enabled=False).apply(change_set)

    assert not tools.exists()
    assert (project / "agents" / "skills" / "helper.md").read_text(encoding="utf-8") == "helper"
    move_outcome = report.outcome_for(MoveTree("agents/tools", "agents/skills"))
    assert move_outcome is not None
    assert move_outcome.method == METHOD_MOVE
    assert not report.git_history_preserved


def test_rewrite_replaces_every_occurrence(applier: Applier, project: Path):
    original = "a agents/tools/x\nb agents/tools/y\nc agents/tools/z\nd plans-local\n"
    (project / "NOTES.md").write_text(original, encoding="utf-8")
    (project / "other.md").write_text("agents/tools/", encoding="utf-8")

    report = applier.apply(ChangeSet("upgrade", (RewriteTextInPlace("NOTES.md", FULL_TERMINOLOGY),)))

    content = (project / "NOTES.md").read_text(encoding="utf-8")
    assert content.count("agents/skills/") == 3
    assert content.count("agents/plans/local") == 1
    assert "agents/tools" not in content
    assert "plans-local" not in content
    assert report.outcomes[0].changes == 4
    assert (project / "other.md").read_text(encoding="utf-8") == "agents/tools/"


def test_rewrite_without_matches_is_skipped(applier: Applier, project: Path):
    (project / "NOTES.md").write_text("nothing old", encoding="utf-8")
    report = applier.apply(ChangeSet("upgrade", (RewriteTextInPlace("NOTES.md", FULL_TERMINOLOGY),)))
    assert report.outcomes[0].status is OutcomeStatus.SKIPPED


def test_vanished_move_source_is_isolated(applier: Applier, project: Path):
    change_set = ChangeSet(
        "upgrade",
        (MoveTree("agents/tools", "agents/skills"), CreateDir("agents/plans")),
    )

    report = applier.apply(change_set)

    assert report.outcomes[0].status is OutcomeStatus.FAILED
    assert "no longer exists" in report.outcomes[0].detail
    assert report.outcomes[1].status is OutcomeStatus.SUCCEEDED
    assert (project / "agents" / "plans").is_dir()


def test_move_refuses_existing_destination(applier: Applier, project: Path):
    (project / "tasks").mkdir()
    (project / "agents" / "plans").mkdir(parents=True)
    report = applier.apply(ChangeSet("upgrade", (MoveTree("tasks", "agents/plans"),)))
    assert report.has_failures
    assert (project / "tasks").is_dir()


def test_symlink_failure_does_not_abort(applier: Applier, project: Path, monkeypatch: pytest.MonkeyPatch):
    def refuse(target: str, link: Path) -> None:
        raise OSError("symlinks not permitted")

    monkeypatch.setattr(applier_module, "create_symlink", refuse)
    change_set = ChangeSet(
        "scaffold",
        (CreateSymlink("CLAUDE.md", "AGENTS.md"), CreateDir("agents")),
    )

    report = applier.apply(change_set)

    assert report.outcomes[0].status is OutcomeStatus.FAILED
    assert report.outcomes[0].detail == "symlinks not permitted"
    assert report.outcomes[1].status is OutcomeStatus.SUCCEEDED


def test_missing_template_is_fatal_before_any_operation(applier: Applier, project: Path):
    change_set = ChangeSet("scaffold", (CreateDir("agents"), CreateFile("A.md", "no-such-template")))

    with pytest.raises(MissingTemplateError):
        applier.apply(change_set)

    assert not (project / "agents").exists()


def test_missing_root_is_fatal(tmp_path: Path, store: TemplateStore):
    with pytest.raises(PreconditionError):
        Applier(tmp_path / "gone", store).apply(ChangeSet("scaffold", (CreateDir("agents"),)))


def test_copy_subtree_never_merges(applier: Applier, project: Path):
    dest = project / "agents" / "skills" / "demo"
    dest.mkdir(parents=True)
    (dest / "mine.md").write_text("mine", encoding="utf-8")

    report = applier.apply(ChangeSet("scaffold", (CopySubtree("demo", "agents/skills/demo"),)))

    assert report.outcomes[0].status is OutcomeStatus.SKIPPED
    assert not (dest / "SKILL.md").exists()


def test_copy_subtree_unknown_source_fails(applier: Applier):
    report = applier.apply(ChangeSet("scaffold", (CopySubtree("ghost", "agents/skills/ghost"),)))
    assert report.outcomes[0].status is OutcomeStatus.FAILED


def test_gitignore_append_twice(applier: Applier, project: Path):
    op = AppendGitignoreLines(("agents/plans/local/",))
    first = applier.apply(ChangeSet("scaffold", (op,)))
    second = applier.apply(ChangeSet("scaffold", (op,)))

    assert first.outcomes[0].status is OutcomeStatus.SUCCEEDED
    assert second.outcomes[0].status is OutcomeStatus.SKIPPED
    assert (project / ".gitignore").read_text(encoding="utf-8").count("agents/plans/local/") == 1


def test_skip_marker_reported_as_skipped(applier: Applier):
    report = applier.apply(ChangeSet("scaffold", (SkipFile("AGENTS.md"),)))
    assert report.skipped[0].detail == "already exists"
    assert report.to_dict()["skipped"] == 1
