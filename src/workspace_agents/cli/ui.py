"""Rich rendering for plans and apply reports."""

from __future__ import annotations

from typing import Optional

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from workspace_agents.applier import ApplyReport, OutcomeStatus
from workspace_agents.changeset import (
    AppendGitignoreLines,
    ChangeSet,
    CopySubtree,
    CreateDir,
    CreateFile,
    CreateSymlink,
    MoveTree,
    Operation,
    RewriteTextInPlace,
    SkipFile,
)

BANNER = r"""
 __      __       _
 \ \    / /__ _ _| |__ ____ __  __ _ __ ___
  \ \/\/ / _ \ '_| / /(_-< '_ \/ _` / _/ -_)
   \_/\_/\___/_| |_\_\/__/ .__/\__,_\__\___|
                         |_|   a g e n t s
"""

TAGLINE = "Workspace Agents - AI agent workflow scaffolding for any project"

# Display order of operation groups in the plan preview.
_GROUP_ORDER = (
    "move_tree",
    "rewrite_text",
    "create_dir",
    "create_file",
    "skip_file",
    "copy_subtree",
    "create_symlink",
    "fix_symlink",
    "append_gitignore",
    "quarantine",
)


def _resolve_console(console: Optional[Console]) -> Console:
    return console if console is not None else Console()


def show_banner(console: Optional[Console] = None) -> None:
    """Display the ASCII art banner."""
    console = _resolve_console(console)
    banner_lines = BANNER.strip("\n").split("\n")
    colors = ["bright_blue", "blue", "cyan", "bright_cyan", "white", "bright_white"]

    styled_banner = Text()
    for i, line in enumerate(banner_lines):
        styled_banner.append(line + "\n", style=colors[i % len(colors)])

    console.print(Align.center(styled_banner))
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def _group_key(op: Operation) -> str:
    if isinstance(op, MoveTree) and op.quarantine:
        return "quarantine"
    if isinstance(op, CreateSymlink) and op.is_fix:
        return "fix_symlink"
    return op.kind


def format_operation(op: Operation) -> str:
    """One preview line (Rich markup) per operation."""
    if isinstance(op, CreateDir):
        return f"[green]CREATE DIR[/green]   {op.path}"
    if isinstance(op, CreateFile):
        return f"[green]CREATE[/green]       {op.destination}"
    if isinstance(op, SkipFile):
        return f"[bright_black]SKIP         {op.path} ({op.reason})[/bright_black]"
    if isinstance(op, CreateSymlink):
        if op.is_fix:
            return (
                f"[yellow]FIX LINK[/yellow]     {op.link_path} [bright_black]→[/bright_black] "
                f"{op.target_path} [bright_black]({op.fix_reason})[/bright_black]"
            )
        return f"[cyan]SYMLINK[/cyan]      {op.link_path} [bright_black]→[/bright_black] {op.target_path}"
    if isinstance(op, MoveTree):
        label = "[magenta]LEGACY[/magenta]      " if op.quarantine else "[blue]MOVE[/blue]        "
        return f"{label} {op.old_path} [bright_black]→[/bright_black] {op.new_path}"
    if isinstance(op, RewriteTextInPlace):
        lines = [f"[yellow]MODIFY[/yellow]       {op.path}"]
        for pattern, replacement in op.matched or op.replacements:
            lines.append(f"  [red]- {pattern}[/red]")
            lines.append(f"  [green]+ {replacement}[/green]")
        return "\n".join(lines)
    if isinstance(op, AppendGitignoreLines):
        return f"[bright_black]APPEND[/bright_black]       .gitignore ({', '.join(op.lines)})"
    if isinstance(op, CopySubtree):
        return f"[green]COPY SKILL[/green]   {op.destination}"
    return op.kind


def print_change_set(change_set: ChangeSet, console: Optional[Console] = None) -> None:
    """Print the plan grouped by operation kind, then the summary line."""
    console = _resolve_console(console)
    title = "Scaffolding Workspace Agents..." if change_set.mode == "scaffold" else "Upgrading Workspace Agents..."
    console.print(f"\n[bold]{title}[/bold]\n")

    groups: dict[str, list[Operation]] = {}
    for op in change_set.operations:
        groups.setdefault(_group_key(op), []).append(op)

    for key in _GROUP_ORDER:
        ops = groups.get(key)
        if not ops:
            continue
        for op in ops:
            console.print(format_operation(op), highlight=False)
        console.print()

    if change_set.is_empty:
        console.print(f"[bright_black]{change_set.summary_line()}[/bright_black]")
    else:
        console.print(f"[bold]{change_set.summary_line()}[/bold]")


def print_apply_report(
    report: ApplyReport,
    mode: str,
    console: Optional[Console] = None,
    verbose: bool = False,
) -> None:
    """Print succeeded/skipped/failed counts and list any failures."""
    console = _resolve_console(console)
    console.print()

    if verbose:
        for outcome in report.outcomes:
            style = status_style(outcome.status)
            line = format_operation(outcome.operation).splitlines()[0]
            detail = f" [dim]({outcome.detail})[/dim]" if outcome.detail else ""
            console.print(f"  [{style}]{outcome.status.value:<9}[/{style}] {line}{detail}", highlight=False)
        console.print()

    if report.failed:
        console.print("[red]Failed operations:[/red]")
        for outcome in report.failed:
            console.print(f"  [red]✗[/red] {format_operation(outcome.operation).splitlines()[0]}")
            console.print(f"    [dim]{outcome.detail}[/dim]")
        console.print()

    counts = (
        f"{len(report.succeeded)} succeeded, "
        f"{len(report.skipped)} skipped, "
        f"{len(report.failed)} failed"
    )
    verb = "scaffolded" if mode == "scaffold" else "upgraded"

    if report.has_failures:
        console.print(
            Panel(
                f"Workspace Agents {verb} with warnings ({counts}).\n"
                "Review the failed operations above and fix them by hand.",
                border_style="yellow",
            )
        )
        return

    console.print(f"[bold green]✓ Workspace Agents {verb} successfully![/bold green] [dim]({counts})[/dim]")
    if mode == "scaffold":
        console.print(
            "[white]Next step:[/white] open [cyan]agents/plans/getting-started.md[/cyan] "
            "and work through the plan."
        )
    else:
        console.print("Changes applied. Review [cyan]git diff[/cyan] for details.")


def status_style(status: OutcomeStatus) -> str:
    return {
        OutcomeStatus.SUCCEEDED: "green",
        OutcomeStatus.SKIPPED: "yellow",
        OutcomeStatus.FAILED: "red",
    }[status]


__all__ = [
    "BANNER",
    "TAGLINE",
    "format_operation",
    "print_apply_report",
    "print_change_set",
    "show_banner",
]
