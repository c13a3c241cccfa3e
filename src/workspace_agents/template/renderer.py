"""Placeholder substitution for template bodies."""

from __future__ import annotations

import re
from datetime import date
from typing import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")


def render_template(body: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{KEY}}`` placeholders whose KEY is in *variables*.

    Unknown placeholders stay in the output verbatim so a missing variable is
    easy to spot in generated files. Substituted values are never re-scanned.
    """

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_substitute, body)


def find_placeholders(body: str) -> list[str]:
    """Return placeholder names in order of first appearance."""
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(body)))


def get_default_variables(
    project_name: str,
    version: str | None = None,
    today: date | None = None,
) -> dict[str, str]:
    """Variables frozen into every CreateFile record."""
    if version is None:
        from workspace_agents import __version__

        version = __version__
    return {
        "PROJECT_NAME": project_name,
        "CREATION_DATE": (today or date.today()).isoformat(),
        "FRAMEWORK_VERSION": version,
    }


__all__ = ["PLACEHOLDER_PATTERN", "find_placeholders", "get_default_variables", "render_template"]
