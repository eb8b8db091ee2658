"""Quality gate orchestrator.

Runs linters per detected language, then the custom checks over every
source file and, for TypeScript projects, the JS/TS and proxy checks.
"""

from __future__ import annotations

import logging
import shutil
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lens_cli.config import COLORS, console as default_console
from lens_cli.process import run_command
from lens_cli.quality.checks import check_hardcoded_secrets, run_js_checks
from lens_cli.quality.files import (
    SOURCE_EXTENSIONS,
    Language,
    Violation,
    collect_source_files,
    detect_languages,
)
from lens_cli.quality.linters import CommandRunner, run_linter
from lens_cli.quality.proxy import run_proxy_checks

logger = logging.getLogger(__name__)


@dataclass
class GateResult:
    """Outcome of a quality gate run.

    Attributes:
        passed: True when there are no lint failures and no violations
        languages: Languages detected in the project
        lint_failures: Languages whose linter failed
        violations: Findings from custom and proxy checks
    """

    passed: bool
    languages: list[Language] = field(default_factory=list)
    lint_failures: list[Language] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return len(self.lint_failures) + len(self.violations)


def run_gate(
    project_dir: Path,
    skip_linters: bool = False,
    runner: CommandRunner = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> GateResult:
    """Run every applicable check over a project.

    Args:
        project_dir: Project to scan
        skip_linters: Skip ESLint/Qodana and run only the built-in checks
        runner: Command runner used by the linters
        which: PATH lookup used by the linters

    Returns:
        GateResult; a project with no recognized sources passes trivially
    """
    languages = detect_languages(project_dir)
    if not languages:
        return GateResult(passed=True)

    lint_failures: list[Language] = []
    if not skip_linters:
        for language in languages:
            result = run_linter(project_dir, language, runner, which)
            logger.debug("%s linter: %s", language.value, result.output)
            if not result.passed:
                lint_failures.append(language)

    extensions = [ext for lang in languages for ext in SOURCE_EXTENSIONS[lang]]
    violations = check_hardcoded_secrets(collect_source_files(project_dir, extensions), project_dir)

    if Language.TYPESCRIPT in languages:
        ts_files = collect_source_files(project_dir, SOURCE_EXTENSIONS[Language.TYPESCRIPT])
        violations.extend(run_js_checks(ts_files, project_dir))
        violations.extend(run_proxy_checks(project_dir))

    return GateResult(
        passed=not lint_failures and not violations,
        languages=languages,
        lint_failures=lint_failures,
        violations=violations,
    )


def render_gate(result: GateResult, project_dir: Path, out: Console | None = None) -> None:
    """Print the gate report.

    Violations are listed one per block as `<check> <file>[:line]` followed by
    the message, then summarized per check in a table.
    """
    out = out or default_console

    if not result.languages:
        out.print("Quality gate: no recognized source files found")
        return

    out.print(f"Quality gate: {escape(str(project_dir))}")
    out.print(f"Languages detected: {', '.join(lang.value for lang in result.languages)}")
    out.print()

    if result.violations:
        out.print(f"[{COLORS['fail']}]Custom checks: {len(result.violations)} violation(s)[/]")
        out.print()
        for violation in result.violations:
            out.print(f"  {violation.check} {escape(violation.location)}")
            out.print(f"    {escape(violation.message)}", style=COLORS["dim"])

        counts = Counter(v.check for v in result.violations)
        table = Table(show_header=True, header_style=f"bold {COLORS['primary']}", box=None)
        table.add_column("Check", style="cyan")
        table.add_column("Count", justify="right")
        for check, count in counts.most_common():
            table.add_row(check, str(count))
        out.print()
        out.print(table)

    if result.lint_failures:
        out.print(
            f"[{COLORS['fail']}]Linter failures: "
            f"{', '.join(lang.value for lang in result.lint_failures)}[/]"
        )

    out.print()
    if result.passed:
        out.print("[bold green]Quality gate: all checks passed[/bold green]")
    else:
        out.print(f"[bold red]Quality gate: FAILED ({result.issue_count} issue(s))[/bold red]")
