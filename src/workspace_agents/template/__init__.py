"""Template management for workspace-agents."""

from .renderer import (
    PLACEHOLDER_PATTERN,
    find_placeholders,
    get_default_variables,
    render_template,
)
from .store import (
    TEMPLATE_ROOT_ENV,
    TemplateStore,
    resolve_template_root,
)

__all__ = [
    "PLACEHOLDER_PATTERN",
    "TEMPLATE_ROOT_ENV",
    "TemplateStore",
    "find_placeholders",
    "get_default_variables",
    "render_template",
    "resolve_template_root",
]
