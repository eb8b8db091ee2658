"""External linter dispatch.

TypeScript/JavaScript projects go through ESLint (only when the project
ships an ESLint config); every other language goes through the Qodana CLI
with the matching linter image. A missing tool is a skip, not a failure.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from lens_cli.errors import ErrorHandler
from lens_cli.process import run_command
from lens_cli.quality.files import QODANA_LINTERS, Language

logger = logging.getLogger(__name__)

ESLINT_TIMEOUT_SECONDS = 120
QODANA_TIMEOUT_SECONDS = 600

ESLINT_CONFIG_FILES = [
    "eslint.config.js",
    "eslint.config.mjs",
    ".eslintrc.json",
    ".eslintrc.js",
]

CommandRunner = Callable[[list[str], str, float], tuple[int, str]]


@dataclass
class LintResult:
    """Outcome of one linter run."""

    passed: bool
    output: str


def _run(
    argv: list[str],
    working_dir: Path,
    timeout: int,
    runner: CommandRunner,
    failure_label: str,
) -> LintResult:
    try:
        exit_code, output = runner(argv, str(working_dir), float(timeout))
    except (asyncio.TimeoutError, OSError) as e:
        classified = ErrorHandler().classify_error(
            e, {"command": argv[0], "timeout": timeout}
        )
        logger.debug("%s: %s", failure_label, classified.user_message)
        return LintResult(
            passed=False,
            output=(
                f"{failure_label}: {classified.user_message}\n"
                f"  Fix: {classified.fix_suggestion}"
            ),
        )

    if exit_code == 0:
        return LintResult(passed=True, output=output)
    return LintResult(passed=False, output=output or failure_label)


def has_eslint_config(project_dir: Path) -> bool:
    return any((project_dir / name).exists() for name in ESLINT_CONFIG_FILES)


def run_eslint(project_dir: Path, runner: CommandRunner = run_command) -> LintResult:
    """Run ESLint over src/ if the project configures it."""
    if not has_eslint_config(project_dir):
        return LintResult(passed=True, output="ESLint: no config found, skipping")

    result = _run(
        ["npx", "eslint", "src/"],
        project_dir,
        ESLINT_TIMEOUT_SECONDS,
        runner,
        "ESLint: failed",
    )
    if result.passed and not result.output:
        result.output = "ESLint: passed"
    return result


def run_qodana(
    project_dir: Path,
    linter: str,
    runner: CommandRunner = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> LintResult:
    """Run a Qodana scan with the given linter image if the CLI is installed."""
    if which("qodana") is None:
        return LintResult(passed=True, output=f"Qodana: CLI not found, skipping {linter}")

    result = _run(
        [
            "qodana",
            "scan",
            "--linter",
            linter,
            "--project-dir",
            str(project_dir),
            "--print-problems",
        ],
        project_dir,
        QODANA_TIMEOUT_SECONDS,
        runner,
        f"Qodana {linter}: failed",
    )
    if result.passed and not result.output:
        result.output = f"Qodana {linter}: passed"
    return result


def run_linter(
    project_dir: Path,
    language: Language,
    runner: CommandRunner = run_command,
    which: Callable[[str], str | None] = shutil.which,
) -> LintResult:
    """Dispatch to the linter for a language."""
    if language is Language.TYPESCRIPT:
        return run_eslint(project_dir, runner)
    return run_qodana(project_dir, QODANA_LINTERS[language], runner, which)
