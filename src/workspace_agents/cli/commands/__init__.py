"""Command registrations for the workspace-agents CLI."""

from .init import register_init_command, run_init

__all__ = ["register_init_command", "run_init"]
