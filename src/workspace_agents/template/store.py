"""Template discovery for bundled and local template roots."""

from __future__ import annotations

import logging
import os
from importlib.resources import files
from pathlib import Path
from typing import Mapping

from workspace_agents.errors import ConfigurationError
from workspace_agents.manifest import MANIFEST_FILENAME
from workspace_agents.template.renderer import render_template

logger = logging.getLogger(__name__)

TEMPLATE_ROOT_ENV = "WORKSPACE_AGENTS_TEMPLATE_ROOT"
TEMPLATE_SUFFIX = ".template"
SUBTREES_DIR = "skills"


class TemplateStore:
    """Read-only access to template bodies and bundled subtrees under a root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"TemplateStore({str(self.root)!r})"

    def path_for(self, template_id: str) -> Path:
        return self.root / template_id

    def has(self, template_id: str) -> bool:
        return self.path_for(template_id).is_file()

    def load(self, template_id: str) -> str:
        """Return the raw body for *template_id*.

        Raises:
            ConfigurationError: If no such template is bundled
        """
        path = self.path_for(template_id)
        if not path.is_file():
            raise ConfigurationError(f"Template not found: {template_id}")
        return path.read_text(encoding="utf-8")

    def load_and_render(self, template_id: str, variables: Mapping[str, str]) -> str:
        return render_template(self.load(template_id), variables)

    def list_templates(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            str(p.relative_to(self.root)).replace("\\", "/")
            for p in self.root.rglob(f"*{TEMPLATE_SUFFIX}")
            if p.is_file()
        )

    def subtree(self, source_id: str) -> Path:
        """Directory holding the bundled subtree named *source_id*."""
        return self.root / SUBTREES_DIR / source_id

    def has_subtree(self, source_id: str) -> bool:
        return self.subtree(source_id).is_dir()

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILENAME


def _packaged_template_root() -> Path:
    return Path(str(files("workspace_agents").joinpath("templates")))


def _is_template_root(candidate: Path) -> bool:
    return (candidate / MANIFEST_FILENAME).is_file()


def resolve_template_root(override_path: str | None = None) -> Path:
    """Return the directory templates and the manifest are read from.

    Resolution order: ``--template-root`` flag, then the
    ``WORKSPACE_AGENTS_TEMPLATE_ROOT`` environment variable, then the
    templates packaged with the CLI. Overrides without a ``manifest.json``
    are ignored with a warning.

    Args:
        override_path: Optional override path (e.g., from --template-root flag)
    """
    if override_path:
        override = Path(override_path).expanduser().resolve()
        if _is_template_root(override):
            logger.debug("Using template root from --template-root: %s", override)
            return override
        logger.warning("--template-root set to %s, but %s not found there. Ignoring.", override, MANIFEST_FILENAME)

    env_root = os.environ.get(TEMPLATE_ROOT_ENV)
    if env_root:
        root_path = Path(env_root).expanduser().resolve()
        if _is_template_root(root_path):
            logger.debug("Using template root from %s: %s", TEMPLATE_ROOT_ENV, root_path)
            return root_path
        logger.warning(
            "%s set to %s, but %s not found there. Ignoring.", TEMPLATE_ROOT_ENV, root_path, MANIFEST_FILENAME
        )

    return _packaged_template_root()


__all__ = [
    "TEMPLATE_ROOT_ENV",
    "TemplateStore",
    "resolve_template_root",
]
