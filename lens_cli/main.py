"""Main entry point and CLI dispatch."""

import argparse
import sys
from pathlib import Path

from rich.markup import escape
from rich.table import Table

from lens_cli.config import COLORS, Settings, configure_logging, console
from lens_cli.preflight import PREFLIGHT_GATES, render_preflight
from lens_cli.quality.canaries import insert_canaries, validate_canaries
from lens_cli.quality.construction import validate_construction
from lens_cli.quality.evidence import evidence_dir, reconcile_votes, validate_evidence
from lens_cli.quality.gate import render_gate, run_gate
from lens_cli.quality.metrics import (
    metrics_dir,
    record_phase_metrics,
    report_metrics,
    start_pipeline_metrics,
)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit code 1."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = _ArgumentParser(
        prog="lens",
        description="Lens - review loop preflight and quality gate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Preflight command
    preflight_parser = subparsers.add_parser(
        "preflight", help="Check that an external scan tool is ready"
    )
    preflight_parser.add_argument(
        "tool", choices=sorted(PREFLIGHT_GATES), help="Tool to check"
    )
    preflight_parser.add_argument(
        "--project-root",
        type=Path,
        help="Project root to check, used as given (defaults to the enclosing git repository)",
    )
    preflight_parser.add_argument(
        "--mcp-config", type=Path, help="MCP config file (defaults to <root>/.mcp.json)"
    )

    # Gate command
    gate_parser = subparsers.add_parser("gate", help="Run the quality gate")
    gate_parser.add_argument(
        "target", nargs="?", type=Path, default=Path.cwd(), help="Project to scan"
    )
    gate_parser.add_argument(
        "--skip-linters", action="store_true", help="Skip ESLint and Qodana"
    )

    # Canary commands
    for name, help_text in (
        ("insert-canaries", "Plant canary defects before a review phase"),
        ("validate-canaries", "Check which canaries a review phase caught"),
        ("validate-evidence", "Check evidence checklists for a review phase"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("phase", help="Review phase name")
        sub.add_argument("target", type=Path, help="Target project directory")

    votes_parser = subparsers.add_parser(
        "reconcile-votes", help="Report disagreements between review phases"
    )
    votes_parser.add_argument("target", type=Path, help="Target project directory")

    # Metrics commands
    start_parser = subparsers.add_parser("start-metrics", help="Start pipeline metrics")
    start_parser.add_argument("pipeline", help="Pipeline name")
    start_parser.add_argument("target", help="Target project directory")

    record_parser = subparsers.add_parser("record-metrics", help="Record metrics for a phase")
    record_parser.add_argument("phase", help="Phase name")
    record_parser.add_argument("found", type=int, help="Issues found")
    record_parser.add_argument("fixed", type=int, help="Issues fixed")
    record_parser.add_argument("ms", type=int, help="Duration in milliseconds")
    record_parser.add_argument("target", nargs="?", type=Path, default=Path("."))

    report_parser = subparsers.add_parser("report-metrics", help="Finish and archive metrics")
    report_parser.add_argument("target", nargs="?", type=Path, default=Path("."))

    # Construction command
    construction_parser = subparsers.add_parser(
        "validate-construction", help="Check a plan's CONSTRUCTION_CHECKS"
    )
    construction_parser.add_argument("plan_file", type=Path, help="Plan Markdown file")
    construction_parser.add_argument("project_dir", type=Path, help="Project directory")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        parser.exit(1)
    return args


def _run_preflight(args: argparse.Namespace) -> int:
    settings = Settings.from_environment(project_root=args.project_root)
    if args.mcp_config is not None:
        settings.mcp_config_override = args.mcp_config.expanduser()
    result = PREFLIGHT_GATES[args.tool](settings)
    render_preflight(result)
    return result.exit_code


def _run_gate(args: argparse.Namespace) -> int:
    target = args.target.resolve()
    if not target.exists():
        msg = f"Target not found: {target}"
        raise FileNotFoundError(msg)
    result = run_gate(target, skip_linters=args.skip_linters)
    render_gate(result, target)
    return 0 if result.passed else 1


def _insert_canaries(args: argparse.Namespace) -> int:
    manifest = insert_canaries(args.phase, args.target.resolve())
    for canary in manifest.canaries:
        console.print(f"  {canary.category}", style=COLORS["dim"])
    console.print(f"Inserted {len(manifest.canaries)} canaries for phase '{escape(args.phase)}'")
    return 0


def _validate_canaries(args: argparse.Namespace) -> int:
    validation = validate_canaries(args.phase, args.target.resolve())
    for outcome in validation.outcomes:
        location = escape(outcome.location)
        if not outcome.caught:
            console.print(f"[{COLORS['fail']}]MISSED canary:[/] {outcome.category} in {location}")
        elif outcome.file_removed:
            console.print(
                f"[{COLORS['ok']}]CAUGHT canary:[/] {outcome.category} in {location} (file removed)"
            )
        else:
            console.print(f"[{COLORS['ok']}]CAUGHT canary:[/] {outcome.category} in {location}")

    total = len(validation.outcomes)
    phase = escape(args.phase)
    console.print()
    if validation.passed:
        console.print(f"[bold green]All {total} canaries caught by phase '{phase}'[/bold green]")
        return 0
    console.print(
        f"[bold red]{validation.missed}/{total} canaries missed by phase '{phase}'[/bold red]"
    )
    return 1


def _validate_evidence(args: argparse.Namespace) -> int:
    report = validate_evidence(args.phase, args.target.resolve())
    for status in report.checklists:
        if status.expected is None:
            console.print(f"Checklist {status.checklist_id}: {status.reviewed} items (no counter)")
        elif status.complete:
            console.print(
                f"Checklist {status.checklist_id}: {status.reviewed}/{status.expected} items reviewed"
            )
        else:
            console.print(
                f"[{COLORS['fail']}]Checklist {status.checklist_id}: "
                f"{status.reviewed}/{status.expected} INCOMPLETE ({status.label})[/]"
            )

    console.print()
    if report.passed:
        console.print("[bold green]All evidence checklists complete[/bold green]")
        return 0
    console.print("[bold red]Evidence validation: FAILED[/bold red]")
    return 1


def _reconcile_votes(args: argparse.Namespace) -> int:
    target = args.target.resolve()
    if not evidence_dir(target).is_dir():
        console.print("No evidence directory - nothing to reconcile")
        return 0

    result = reconcile_votes(target)
    console.print(
        f"Reconciliation: {result.agreements} agreements, "
        f"{len(result.disagreements)} disagreements"
    )
    if result.passed:
        console.print("[green]No disagreements - all phases agree[/green]")
        return 0

    for key, reviews in result.disagreements.items():
        joined = ", ".join(f"{r.phase}: {r.verdict}" for r in reviews)
        console.print(f"  {escape(key)}", style="bold")
        console.print(f"    {escape(joined)}", style=COLORS["dim"])
    console.print(f"Wrote disagreement report to {escape(str(result.report_path))}")
    return 1


def _start_metrics(args: argparse.Namespace) -> int:
    directory = metrics_dir(Path(args.target).resolve())
    start_pipeline_metrics(args.pipeline, args.target, directory)
    console.print(f"Metrics started: {escape(args.pipeline)} → {escape(args.target)}")
    return 0


def _record_metrics(args: argparse.Namespace) -> int:
    directory = metrics_dir(args.target.resolve())
    record_phase_metrics(directory, args.phase, args.found, args.fixed, args.ms)
    console.print(
        f"Recorded {escape(args.phase)}: {args.found} found, {args.fixed} fixed ({args.ms}ms)",
        style=COLORS["dim"],
    )
    return 0


def _report_metrics(args: argparse.Namespace) -> int:
    metrics, archive = report_metrics(metrics_dir(args.target.resolve()))

    table = Table(
        title=f"Pipeline: {escape(metrics.pipeline)} → {escape(metrics.target)}",
        show_header=True,
        header_style=f"bold {COLORS['primary']}",
    )
    table.add_column("Phase", style="cyan")
    table.add_column("Found", justify="right")
    table.add_column("Fixed", justify="right")
    table.add_column("Duration", justify="right")
    for phase in metrics.phases:
        table.add_row(
            escape(phase.phase),
            str(phase.issues_found),
            str(phase.issues_fixed),
            f"{phase.duration_ms}ms",
        )

    console.print()
    console.print(table)
    console.print(f"Total: {metrics.total_found} found, {metrics.total_fixed} fixed")
    console.print(f"Archived to {escape(str(archive))}", style=COLORS["dim"])
    return 0


def _validate_construction(args: argparse.Namespace) -> int:
    passed, results = validate_construction(args.plan_file.resolve(), args.project_dir.resolve())
    for result in results:
        if result.found:
            console.print(f"  [{COLORS['ok']}]PASS:[/] {escape(result.check.describe())}")
        else:
            console.print(f"  [{COLORS['fail']}]FAIL:[/] {escape(result.check.describe())}")

    console.print()
    if passed:
        console.print("[bold green]Construction check: all items present[/bold green]")
        return 0
    console.print("[bold red]Construction check: FAILED - missing items[/bold red]")
    return 1


COMMANDS = {
    "preflight": _run_preflight,
    "gate": _run_gate,
    "insert-canaries": _insert_canaries,
    "validate-canaries": _validate_canaries,
    "validate-evidence": _validate_evidence,
    "reconcile-votes": _reconcile_votes,
    "start-metrics": _start_metrics,
    "record-metrics": _record_metrics,
    "report-metrics": _report_metrics,
    "validate-construction": _validate_construction,
}


def cli_main(argv: list[str] | None = None) -> None:
    """Entry point for console script."""
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)
        sys.exit(COMMANDS[args.command](args))
    except (ValueError, RuntimeError, OSError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        # Clean exit on Ctrl+C - suppress ugly traceback
        console.print("\n\n[yellow]Interrupted[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    cli_main()
