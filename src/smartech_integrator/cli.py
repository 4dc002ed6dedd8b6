"""
Smartech Integrator - Command-line interface.

Usage:
  smartech-integrator scan PATH
  smartech-integrator plan PATH --set smartechAppId=... --set deeplinkScheme=...
  smartech-integrator apply PATH --inputs inputs.json --select android-maven-repo
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import InvalidOptionsError, build_options, validate_options
from .models import ApplyResult, Change, IntegrationOptions, VerifyResult
from .patcher import apply_changes
from .planner import plan_integration
from .reporting import write_json_snapshot, write_markdown_report
from .scanner import scan_project
from .verify import DEFAULT_MAX_ATTEMPTS, apply_and_verify

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Plan and apply Smartech SDK integration changes for mobile projects.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

EXIT_REMAINING = 1
EXIT_INVALID_OPTIONS = 2

ROOT_ARGUMENT = typer.Argument(..., help="Project root (React Native, Flutter or native Android).")
PART_OPTION = typer.Option(None, "--part", "-p", help="Integration part: base, push or px. Repeatable.")
PLATFORM_OPTION = typer.Option(None, "--platform", help="react-native, flutter or native-android.")
INPUTS_OPTION = typer.Option(
    None, "--inputs", exists=True, dir_okay=False, readable=True, help="JSON file with integration inputs."
)
SET_OPTION = typer.Option(None, "--set", "-s", help="Input override as KEY=VALUE. Repeatable.")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")
JSON_OPTION = typer.Option(False, "--json", help="Print machine-readable JSON instead of tables.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _load_options(
    root: Path,
    parts: Optional[List[str]],
    platform: Optional[str],
    inputs_file: Optional[Path],
    assignments: Optional[List[str]],
    dry_run: bool = False,
) -> IntegrationOptions:
    try:
        options = build_options(
            str(root),
            parts=parts or (),
            app_platform=platform,
            inputs_file=inputs_file,
            assignments=assignments or (),
            dry_run=dry_run,
        )
        problems = validate_options(options)
        if problems:
            raise InvalidOptionsError(problems)
    except InvalidOptionsError as error:
        _print_problems(error.messages)
        raise typer.Exit(code=EXIT_INVALID_OPTIONS)
    except json.JSONDecodeError as error:
        _print_problems([f"{inputs_file} is not valid JSON: {error}"])
        raise typer.Exit(code=EXIT_INVALID_OPTIONS)
    return options


def _print_problems(messages: Sequence[str]) -> None:
    err_console.print("[bold red]Invalid options:[/bold red]")
    for message in messages:
        err_console.print(f"  - {message}")


# =============================================================================
# RENDERING
# =============================================================================

def _changes_table(changes: Sequence[Change]) -> Table:
    table = Table(title=f"{len(changes)} proposed changes")
    table.add_column("ID", overflow="fold")
    table.add_column("Module")
    table.add_column("Kind")
    table.add_column("File", overflow="fold")
    table.add_column("Title")
    for change in changes:
        kind = "[yellow]manual[/yellow]" if change.is_advisory else change.kind
        table.add_row(change.id, change.module, kind, change.file_path, change.title)
    return table


def _results_table(title: str, results: Sequence[ApplyResult]) -> Table:
    table = Table(title=title)
    table.add_column("ID", overflow="fold")
    table.add_column("Applied")
    table.add_column("Message")
    for result in results:
        applied = "[green]yes[/green]" if result.applied else "[red]no[/red]"
        table.add_row(result.change_id, applied, result.message)
    return table


def _print_remaining(changes: Sequence[Change]) -> None:
    console.print(f"[bold yellow]Remaining changes ({len(changes)}):[/bold yellow]")
    for change in changes:
        console.print(f"- [bold]{change.id}[/bold]: {change.title}")
        console.print(f"  {change.summary}")
        if change.manual_snippet:
            console.print(Panel(change.manual_snippet, title=change.file_path, expand=False))


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def scan(root: Path = ROOT_ARGUMENT, verbose: bool = VERBOSE_OPTION) -> None:
    """Print what the scanner detects at ROOT."""
    _configure_logging(verbose)
    typer.echo(json.dumps(scan_project(str(root.expanduser().resolve())).to_dict(), indent=2))


@app.command()
def plan(
    root: Path = ROOT_ARGUMENT,
    part: Optional[List[str]] = PART_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    inputs: Optional[Path] = INPUTS_OPTION,
    assignments: Optional[List[str]] = SET_OPTION,
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", file_okay=False, help="Write smartech_plan.json and a markdown report here."
    ),
    as_json: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show the changes needed to integrate Smartech. Never writes project files."""
    _configure_logging(verbose)
    options = _load_options(root, part, platform, inputs, assignments)
    integration_plan = plan_integration(options)

    if as_json:
        typer.echo(json.dumps(integration_plan.to_dict(), indent=2, sort_keys=True))
    elif integration_plan.changes:
        console.print(_changes_table(integration_plan.changes))
    else:
        console.print("[green]Nothing to change: the project is already integrated.[/green]")

    if output_dir is not None:
        json_path = write_json_snapshot(output_dir, integration_plan)
        report_path = write_markdown_report(output_dir, integration_plan, typer.__version__)
        console.print(f"Plan written to {json_path}")
        console.print(f"Report written to {report_path}")


@app.command()
def apply(
    root: Path = ROOT_ARGUMENT,
    part: Optional[List[str]] = PART_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    inputs: Optional[Path] = INPUTS_OPTION,
    assignments: Optional[List[str]] = SET_OPTION,
    select: Optional[List[str]] = typer.Option(
        None, "--select", help="Apply only these change ids. Repeatable; default is every change."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would be applied without writing."),
    no_verify: bool = typer.Option(False, "--no-verify", help="Skip the re-plan and retry loop."),
    max_attempts: int = typer.Option(DEFAULT_MAX_ATTEMPTS, "--max-attempts", min=0, help="Retry budget."),
    as_json: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Plan, apply the selected changes, then verify by re-planning."""
    _configure_logging(verbose)
    options = _load_options(root, part, platform, inputs, assignments, dry_run=dry_run)
    integration_plan = plan_integration(options)

    selected_ids = list(select) if select else None
    changes = integration_plan.changes
    if selected_ids is not None:
        unknown = sorted(set(selected_ids) - set(integration_plan.change_ids()))
        if unknown:
            logger.warning("Not in the current plan: %s", ", ".join(unknown))
        wanted = set(selected_ids)
        changes = [change for change in changes if change.id in wanted]

    if no_verify:
        outcome = VerifyResult(results=apply_changes(changes, options.dry_run))
    else:
        outcome = apply_and_verify(changes, options, selected_ids=selected_ids, max_attempts=max_attempts)

    if as_json:
        typer.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        console.print(_results_table("Results", outcome.results))
        if outcome.retry_results:
            console.print(_results_table(f"Retries ({outcome.attempts})", outcome.retry_results))
        if outcome.remaining_changes:
            _print_remaining(outcome.remaining_changes)
        elif not options.dry_run and not no_verify:
            console.print("[green]All selected changes verified.[/green]")

    if outcome.remaining:
        raise typer.Exit(code=EXIT_REMAINING)


@app.command()
def version() -> None:
    """Print the tool version."""
    typer.echo(f"smartech-integrator {__version__} (typer {typer.__version__})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
