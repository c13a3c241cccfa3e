from __future__ import annotations

import json
from pathlib import Path

import pytest

from workspace_agents.errors import ConfigurationError, MissingTemplateError
from workspace_agents.manifest import FileSpec, Manifest, SymlinkSpec, load_manifest
from workspace_agents.template import TemplateStore


def test_load_manifest_from_directory(manifest: Manifest):
    assert manifest.directories == ("agents", "agents/skills", "agents/plans")
    assert manifest.files[0] == FileSpec("AGENTS.md", "agents-tmpl", True)
    assert manifest.files[1].skip_if_exists is False
    assert manifest.symlinks == (SymlinkSpec("CLAUDE.md", "AGENTS.md"),)
    assert manifest.gitignore_lines == ("agents/plans/local/",)
    assert manifest.bundled_subtree_copies == ("demo",)


def test_load_manifest_from_file(template_root: Path):
    manifest = load_manifest(template_root / "manifest.json")
    assert manifest.file_for("AGENTS.md") is not None
    assert manifest.file_for("missing.md") is None


def test_optional_sections_default_to_empty():
    manifest = Manifest.from_dict({"directories": ["a/"], "files": []})
    assert manifest.directories == ("a",)
    assert manifest.symlinks == ()
    assert manifest.gitignore_lines == ()
    assert manifest.bundled_subtree_copies == ()


def test_missing_manifest_file(tmp_path: Path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_manifest(tmp_path / "nope.json")


def test_invalid_json(tmp_path: Path):
    path = tmp_path / "manifest.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        load_manifest(path)


@pytest.mark.parametrize("missing_key", ["directories", "files"])
def test_required_keys(missing_key: str):
    data = {"directories": [], "files": []}
    del data[missing_key]
    with pytest.raises(ConfigurationError, match=missing_key):
        Manifest.from_dict(data)


def test_malformed_file_entry():
    with pytest.raises(ConfigurationError, match="Malformed"):
        Manifest.from_dict({"directories": [], "files": [{"dest": "A.md"}]})


@pytest.mark.parametrize(
    "data",
    [
        {"directories": [42], "files": []},
        {"directories": 7, "files": []},
        {"directories": [], "files": [{"dest": ["A.md"], "template": "a"}]},
        {"directories": [], "files": ["A.md"]},
        {"directories": [], "files": [], "symlinks": [{"link": "L", "target": None}]},
        {"directories": [], "files": [], "gitignoreAppend": [["x/"]]},
    ],
)
def test_non_string_entries_are_configuration_errors(data: dict):
    with pytest.raises(ConfigurationError, match="Malformed"):
        Manifest.from_dict(data)


def test_non_utf8_manifest(tmp_path: Path):
    path = tmp_path / "manifest.json"
    path.write_bytes(b"\xff\xfe{\x00")
    with pytest.raises(ConfigurationError, match="Cannot read"):
        load_manifest(path)


def test_duplicate_destination_rejected():
    data = {
        "directories": [],
        "files": [
            {"dest": "A.md", "template": "a"},
            {"dest": "A.md", "template": "b"},
        ],
    }
    with pytest.raises(ConfigurationError, match="Duplicate file destination"):
        Manifest.from_dict(data)


def test_duplicate_symlink_rejected():
    data = {
        "directories": [],
        "files": [],
        "symlinks": [{"link": "L", "target": "a"}, {"link": "L", "target": "b"}],
    }
    with pytest.raises(ConfigurationError, match="Duplicate symlink path"):
        Manifest.from_dict(data)


def test_validate_templates_lists_every_missing_id(template_root: Path):
    data = json.loads((template_root / "manifest.json").read_text(encoding="utf-8"))
    data["files"].append({"dest": "X.md", "template": "x-tmpl"})
    data["files"].append({"dest": "Y.md", "template": "y-tmpl"})
    manifest = Manifest.from_dict(data)

    with pytest.raises(MissingTemplateError) as exc_info:
        manifest.validate_templates(TemplateStore(template_root))

    assert exc_info.value.template_ids == ["x-tmpl", "y-tmpl"]
    assert isinstance(exc_info.value, ConfigurationError)


def test_validate_templates_passes(manifest: Manifest, store: TemplateStore):
    manifest.validate_templates(store)
