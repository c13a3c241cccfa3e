"""Init command implementation for the workspace-agents CLI.

``init`` scaffolds a fresh project or upgrades an existing one; ``update`` is
the same command under a name that reads better for existing projects.

Examples:
    workspace-agents init              # Scaffold or upgrade the current directory
    workspace-agents init --dry-run    # Preview the plan only
    workspace-agents update -y         # Upgrade without confirmation
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import typer
from rich.console import Console

from workspace_agents import __version__
from workspace_agents.applier import Applier, ApplyReport
from workspace_agents.changeset import ChangeSet
from workspace_agents.cli.ui import print_apply_report, print_change_set
from workspace_agents.core.prober import probe
from workspace_agents.core.symlinks import is_symlink_supported
from workspace_agents.diff import DiffOptions, determine_action, plan_changes
from workspace_agents.errors import ConfigurationError, PreconditionError
from workspace_agents.manifest import load_manifest
from workspace_agents.report import MIGRATION_TEMPLATE_ID, build_migration_report, needs_migration_report
from workspace_agents.template import TemplateStore, get_default_variables, resolve_template_root
from workspace_agents.version_checker import UpdateInfo, check_for_update, update_check_disabled

logger = logging.getLogger(__name__)

ShowBanner = Callable[[], None]
CheckUpdate = Callable[[str], UpdateInfo]


def _show_update_notice(console: Console, check_update: CheckUpdate) -> None:
    info = check_update(__version__)
    if info.available:
        console.print(
            f"[yellow]Update available:[/yellow] {info.current} → [green]{info.latest}[/green]  "
            "[dim]pip install -U workspace-agents[/dim]"
        )
        console.print()


def _emit_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _fail(console: Console, json_output: bool, message: str) -> NoReturn:
    if json_output:
        _emit_json({"error": message})
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _write_migration_report(
    applier: Applier,
    store: TemplateStore,
    change_set: ChangeSet,
    report: ApplyReport,
    variables: dict[str, str],
) -> None:
    if not store.has(MIGRATION_TEMPLATE_ID):
        logger.warning("No %s in %s; migration report not written", MIGRATION_TEMPLATE_ID, store.root)
        return
    report_op = build_migration_report(change_set, report, variables)
    report.outcomes.extend(applier.apply(ChangeSet(change_set.mode, (report_op,))).outcomes)


def run_init(
    project_path: Path,
    *,
    console: Console,
    force: bool = False,
    yes: bool = False,
    skip_symlinks: bool = False,
    reset: bool = False,
    dry_run: bool = False,
    template_root: Optional[str] = None,
    json_output: bool = False,
    verbose: bool = False,
) -> ApplyReport | None:
    """Probe, plan, confirm, and apply for *project_path*.

    Returns:
        The ApplyReport, or None when nothing was applied

    Raises:
        typer.Exit: Exit code 1 on configuration or precondition errors,
            exit code 0 when the user declines the confirmation
    """
    try:
        store = TemplateStore(resolve_template_root(template_root))
        manifest = load_manifest(store.manifest_path)
        manifest.validate_templates(store)
        state = probe(project_path, manifest)
    except (ConfigurationError, PreconditionError) as exc:
        _fail(console, json_output, str(exc))

    variables = get_default_variables(state.project_name)
    options = DiffOptions(
        force=force,
        skip_symlinks=skip_symlinks,
        symlinks_supported=is_symlink_supported(),
    )
    change_set = plan_changes(manifest, state, variables, options, reset=reset)
    action, reason = determine_action(state, change_set)
    payload: dict[str, Any] = {"action": action, "reason": reason, "plan": change_set.to_dict()}

    if not json_output:
        console.print(f"[bold]Project:[/bold] {state.project_name}")
        if state.framework_version:
            console.print(f"[dim]Installed framework version: {state.framework_version}[/dim]")

    if action == "none" or change_set.is_empty:
        if json_output:
            _emit_json(payload)
        elif action == "none":
            console.print(f"\n[green]✓ {reason}[/green]")
            console.print("[dim]Nothing to do.[/dim]")
        else:
            print_change_set(change_set, console)
            console.print("\n[green]Nothing to do - every file is already in place.[/green]")
        return None

    if not json_output:
        console.print(f"[dim]Action: {action} ({reason})[/dim]")
        print_change_set(change_set, console)

    if dry_run:
        if json_output:
            _emit_json({**payload, "dry_run": True})
        else:
            console.print("\n[yellow]DRY RUN[/yellow] - No changes were made")
        return None

    if not yes:
        if json_output:
            _fail(
                console,
                json_output,
                "--json cannot prompt for confirmation; pass --yes to apply or --dry-run to preview",
            )
        console.print()
        if not typer.confirm("Apply these changes?", default=True):
            console.print("[yellow]Cancelled.[/yellow]")
            raise typer.Exit(0)

    applier = Applier(state.root, store)
    try:
        report = applier.apply(change_set)
        if needs_migration_report(change_set):
            _write_migration_report(applier, store, change_set, report, variables)
    except (ConfigurationError, PreconditionError) as exc:
        _fail(console, json_output, str(exc))

    if json_output:
        _emit_json({**payload, "report": report.to_dict()})
    else:
        print_apply_report(report, change_set.mode, console, verbose=verbose)
    return report


def register_init_command(
    app: typer.Typer,
    *,
    console: Console,
    show_banner: ShowBanner,
    check_update: CheckUpdate = check_for_update,
) -> None:
    """Register ``init`` and its ``update`` alias on *app*."""

    def init(
        force: bool = typer.Option(False, "--force", help="Overwrite existing files that allow it"),
        yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompts"),
        skip_symlinks: bool = typer.Option(False, "--skip-symlinks", help="Skip Claude skills symlink creation"),
        reset: bool = typer.Option(False, "--reset", help="Scaffold even if the framework is already present"),
        dry_run: bool = typer.Option(False, "--dry-run", help="Preview changes without applying"),
        template_root: Optional[str] = typer.Option(
            None, "--template-root", help="Use templates from this directory instead of the bundled ones"
        ),
        no_update_check: bool = typer.Option(False, "--no-update-check", help="Skip the PyPI version check"),
        json_output: bool = typer.Option(False, "--json", help="Output plan and results as JSON"),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show per-operation results and debug logs"),
    ) -> None:
        """Initialize the framework (scaffolds new or upgrades existing)."""
        if verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

        if not json_output:
            show_banner()
            if not no_update_check and not update_check_disabled():
                _show_update_notice(console, check_update)

        run_init(
            Path.cwd(),
            console=console,
            force=force,
            yes=yes,
            skip_symlinks=skip_symlinks,
            reset=reset,
            dry_run=dry_run,
            template_root=template_root,
            json_output=json_output,
            verbose=verbose,
        )

    app.command("init")(init)
    app.command("update", help="Update an existing framework to the latest version.")(init)


__all__ = ["register_init_command", "run_init"]
