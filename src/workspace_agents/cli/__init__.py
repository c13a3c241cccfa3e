"""Typer application for the workspace-agents CLI.

Usage:
    workspace-agents init
    workspace-agents update --yes
"""

from __future__ import annotations

import sys

import typer
from rich.align import Align
from rich.console import Console
from typer.core import TyperGroup

from workspace_agents import __version__

from .commands import register_init_command
from .ui import show_banner

console = Console()


def _show_banner() -> None:
    show_banner(console)


class BannerGroup(TyperGroup):
    """Custom group that shows banner before help."""

    def format_help(self, ctx, formatter):
        _show_banner()
        super().format_help(ctx, formatter)


app = typer.Typer(
    name="workspace-agents",
    help="Scaffold and upgrade the Workspace Agents framework in a project",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"workspace-agents {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
):
    """Show banner when no subcommand is provided."""
    if ctx.invoked_subcommand is None and "--help" not in sys.argv and "-h" not in sys.argv:
        _show_banner()
        console.print(Align.center("[dim]Run 'workspace-agents --help' for usage information[/dim]"))
        console.print()


register_init_command(app, console=console, show_banner=_show_banner)


def main():
    app()


if __name__ == "__main__":
    main()
