from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path

import pytest

from workspace_agents.manifest import Manifest, load_manifest
from workspace_agents.template import TemplateStore

MINI_MANIFEST = {
    "directories": ["agents", "agents/skills", "agents/plans"],
    "files": [
        {"dest": "AGENTS.md", "template": "agents-tmpl", "skipIfExists": True},
        {"dest": "agents/README.md", "template": "readme-tmpl", "skipIfExists": False},
    ],
    "symlinks": [{"link": "CLAUDE.md", "target": "AGENTS.md"}],
    "gitignoreAppend": ["agents/plans/local/"],
    "skillsToCopy": ["demo"],
}

VARIABLES = {
    "PROJECT_NAME": "demo",
    "CREATION_DATE": "2024-01-02",
    "FRAMEWORK_VERSION": "1.0.0",
}


def write_template_root(root: Path, manifest: dict | None = None) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "manifest.json").write_text(json.dumps(manifest or MINI_MANIFEST), encoding="utf-8")
    (root / "agents-tmpl").write_text("# {{PROJECT_NAME}}\n\nCreated {{CREATION_DATE}}\n", encoding="utf-8")
    (root / "readme-tmpl").write_text("Agents index for {{PROJECT_NAME}}\n", encoding="utf-8")
    (root / "MIGRATION.md.template").write_text(
        "# Migration\n\nMoves: {{MOVE_COUNT}}\n\n{{MOVES_TABLE}}\n\n{{ROLLBACK}}\n", encoding="utf-8"
    )
    skill = root / "skills" / "demo"
    skill.mkdir(parents=True, exist_ok=True)
    (skill / "SKILL.md").write_text("# Demo skill\n", encoding="utf-8")
    return root


def snapshot(root: Path) -> str:
    """Hash of every path, file body and link target under *root*."""
    digest = hashlib.sha256()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted([*dirnames, *filenames]):
            path = Path(dirpath) / name
            digest.update(str(path.relative_to(root)).encode())
            if path.is_symlink():
                digest.update(b"link:" + os.readlink(path).encode())
            elif path.is_file():
                digest.update(path.read_bytes())
    return digest.hexdigest()


@pytest.fixture()
def template_root(tmp_path: Path) -> Path:
    return write_template_root(tmp_path / "templates")


@pytest.fixture()
def store(template_root: Path) -> TemplateStore:
    return TemplateStore(template_root)


@pytest.fixture()
def manifest(template_root: Path) -> Manifest:
    return load_manifest(template_root)


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture()
def variables() -> dict[str, str]:
    return dict(VARIABLES)


@pytest.fixture()
def snapshot_tree():
    return snapshot


@pytest.fixture()
def make_template_root():
    return write_template_root
