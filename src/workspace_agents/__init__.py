"""Workspace Agents - scaffold and upgrade an AI agent workflow layout in any project."""

__version__ = "1.0.0"

__all__ = ["__version__"]
