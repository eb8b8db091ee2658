"""Preflight gates run before an external scan tool.

Each gate inspects the environment, collects one CheckResult per check and
reaches a single verdict:

- Qodana: ready if the MCP server binary configured in .mcp.json exists, or
  the qodana CLI is on PATH and Docker is reachable. Individual checks only
  warn; the aggregate decides.
- Gemini: ready only if the gemini-reviewer server is configured, its binary
  exists and GEMINI_API_KEY is available. Every failed check counts.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from lens_cli.config import COLORS, Settings, console as default_console
from lens_cli.errors import ErrorHandler
from lens_cli.integrations.docker import DockerStatus, docker_available
from lens_cli.mcp.config import MCPConfig

logger = logging.getLogger(__name__)

QODANA_SERVER = "qodana"
QODANA_LOCAL_SERVER = Path("mcp-servers") / "qodana" / "dist" / "index.js"

GEMINI_SERVER = "gemini-reviewer"
GEMINI_LOCAL_SERVER = Path("mcp-servers") / "gemini-reviewer" / "index.js"
GEMINI_KEY_NAME = "GEMINI_API_KEY"

FIX_MCP_PATH = "Fix: Update .mcp.json to point to the correct path"


class CheckStatus(Enum):
    """Outcome of a single check."""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass
class CheckResult:
    """A single check line plus indented follow-up lines."""

    status: CheckStatus
    message: str
    details: list[str] = field(default_factory=list)


@dataclass
class PreflightResult:
    """Verdict of a preflight gate.

    Attributes:
        tool: Name of the gated tool
        checks: Results in the order the checks ran
        passed: Whether the gate is satisfied
        verdict: The PREFLIGHT PASSED/FAILED line
        fixes: Follow-up lines printed after the verdict
        channels: Readiness paths that are available (e.g. MCP, CLI)
    """

    tool: str
    checks: list[CheckResult]
    passed: bool
    verdict: str
    fixes: list[str] = field(default_factory=list)
    channels: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    @property
    def issue_count(self) -> int:
        return sum(1 for c in self.checks if c.status is CheckStatus.FAIL)


def _resolve_binary(server_path: str, base_dir: Path) -> Path:
    path = Path(server_path).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def _load_binary(mcp_config: MCPConfig, server: str) -> tuple[bool, str | None, list[str]]:
    """Look up a server's binary path.

    Returns:
        (configured, server_path, load_error_lines)
    """
    try:
        config = mcp_config.get_server(server)
    except RuntimeError as e:
        classified = ErrorHandler().classify_error(
            e, {"file_path": str(mcp_config.config_path)}
        )
        logger.debug("MCP config unreadable: %s", classified.user_message)
        return False, None, [f"  {classified.user_message}", f"  Fix: {classified.fix_suggestion}"]

    if config is None:
        return False, None, []
    return True, config.binary_path, []


def check_qodana_mcp(mcp_config: MCPConfig, project_root: Path) -> tuple[CheckResult, bool]:
    """Check 1: Qodana MCP configured and its binary exists."""
    configured, server_path, load_error = _load_binary(mcp_config, QODANA_SERVER)

    if not configured:
        return CheckResult(CheckStatus.WARN, "Qodana MCP not configured in .mcp.json", load_error), False

    if server_path:
        binary = _resolve_binary(server_path, mcp_config.config_path.parent)
        if binary.is_file():
            return CheckResult(CheckStatus.OK, f"Qodana MCP server binary exists: {server_path}"), True

    return (
        CheckResult(
            CheckStatus.WARN,
            f"Qodana MCP configured but binary not found: {server_path or 'unknown'}",
            [
                f"  Local server exists at: {project_root / QODANA_LOCAL_SERVER}",
                f"  {FIX_MCP_PATH}",
            ],
        ),
        False,
    )


def check_qodana_cli(which: Callable[[str], str | None] = shutil.which) -> tuple[CheckResult, bool]:
    """Check 2: Qodana CLI available on PATH."""
    qodana_path = which("qodana")
    if qodana_path:
        return CheckResult(CheckStatus.OK, f"Qodana CLI found: {qodana_path}"), True
    return CheckResult(CheckStatus.WARN, "Qodana CLI not in PATH"), False


def check_docker(probe: Callable[[], DockerStatus] = docker_available) -> tuple[CheckResult, bool]:
    """Check 3: Docker available (needed for CLI mode)."""
    status = probe()
    if status.available:
        return CheckResult(CheckStatus.OK, "Docker is running"), True
    logger.debug("Docker unavailable: %s", status.detail)
    details = [f"  {status.detail}"]
    if status.fix_suggestion:
        details.append(f"  Fix: {status.fix_suggestion}")
    return (
        CheckResult(CheckStatus.WARN, "Docker not available (needed for Qodana CLI)", details),
        False,
    )


def run_qodana_preflight(
    settings: Settings,
    *,
    which: Callable[[str], str | None] = shutil.which,
    docker_probe: Callable[[], DockerStatus] = docker_available,
) -> PreflightResult:
    """Verify Qodana prerequisites before a scan.

    Args:
        settings: Environment settings (project root, MCP config location)
        which: PATH lookup, injectable for tests
        docker_probe: Docker reachability probe, injectable for tests

    Returns:
        PreflightResult; passes if the MCP path or the CLI path is usable
    """
    mcp_config = MCPConfig(settings.mcp_config_path)
    checks: list[CheckResult] = []

    mcp_check, has_mcp = check_qodana_mcp(mcp_config, settings.project_root)
    checks.append(mcp_check)

    cli_check, has_cli = check_qodana_cli(which)
    checks.append(cli_check)

    # Docker only matters for the CLI path
    if has_cli:
        docker_check, docker_ok = check_docker(docker_probe)
        checks.append(docker_check)
        has_cli = docker_ok

    channels = [name for name, ok in (("MCP", has_mcp), ("CLI", has_cli)) if ok]

    if channels:
        return PreflightResult(
            tool="Qodana",
            checks=checks,
            passed=True,
            verdict=f"PREFLIGHT PASSED: Qodana available via {' + '.join(channels)}",
            channels=channels,
        )

    return PreflightResult(
        tool="Qodana",
        checks=checks,
        passed=False,
        verdict="PREFLIGHT FAILED: Neither Qodana MCP nor CLI is available",
        fixes=[
            "Fix: Either update .mcp.json with correct Qodana path, "
            "or install Qodana CLI + Docker"
        ],
    )


def check_gemini_server(mcp_config: MCPConfig, project_root: Path) -> CheckResult:
    """Checks 1 and 2: gemini-reviewer configured and its binary exists."""
    if not mcp_config.exists():
        return CheckResult(CheckStatus.FAIL, f"No .mcp.json found at {mcp_config.config_path}")

    configured, server_path, load_error = _load_binary(mcp_config, GEMINI_SERVER)
    if not configured:
        if load_error:
            return CheckResult(
                CheckStatus.FAIL,
                f"Could not parse {GEMINI_SERVER} server path from .mcp.json",
                load_error,
            )
        return CheckResult(CheckStatus.FAIL, f"{GEMINI_SERVER} not configured in .mcp.json")

    if not server_path:
        return CheckResult(
            CheckStatus.FAIL, f"Could not parse {GEMINI_SERVER} server path from .mcp.json"
        )

    binary = _resolve_binary(server_path, mcp_config.config_path.parent)
    if not binary.is_file():
        return CheckResult(
            CheckStatus.FAIL,
            f"Gemini MCP server binary not found: {server_path}",
            [
                "  .mcp.json points to a file that does not exist.",
                f"  Local server exists at: {project_root / GEMINI_LOCAL_SERVER}",
                f"  {FIX_MCP_PATH}",
            ],
        )

    return CheckResult(CheckStatus.OK, f"Gemini MCP server binary exists: {server_path}")


def check_gemini_key(settings: Settings, mcp_config: MCPConfig) -> CheckResult:
    """Check 3: GEMINI_API_KEY set in the environment or .mcp.json."""
    if settings.gemini_api_key or mcp_config.mentions(GEMINI_KEY_NAME):
        return CheckResult(CheckStatus.OK, f"{GEMINI_KEY_NAME} configured")
    return CheckResult(CheckStatus.FAIL, f"{GEMINI_KEY_NAME} not set in environment or .mcp.json")


def run_gemini_preflight(settings: Settings) -> PreflightResult:
    """Verify Gemini reviewer prerequisites before a scan.

    Args:
        settings: Environment settings (project root, MCP config, API key)

    Returns:
        PreflightResult; fails if any check failed
    """
    mcp_config = MCPConfig(settings.mcp_config_path)
    checks = [
        check_gemini_server(mcp_config, settings.project_root),
        check_gemini_key(settings, mcp_config),
    ]
    errors = sum(1 for c in checks if c.status is CheckStatus.FAIL)

    if errors:
        return PreflightResult(
            tool="Gemini",
            checks=checks,
            passed=False,
            verdict=f"PREFLIGHT FAILED: {errors} issue(s) - cannot run gemini-scan",
            fixes=["Fix the issues above before running this skill."],
        )

    return PreflightResult(
        tool="Gemini",
        checks=checks,
        passed=True,
        verdict="PREFLIGHT PASSED: Gemini MCP ready",
        channels=["MCP"],
    )


PREFLIGHT_GATES: dict[str, Callable[[Settings], PreflightResult]] = {
    "qodana": run_qodana_preflight,
    "gemini": run_gemini_preflight,
}


def render_preflight(result: PreflightResult, out: Console | None = None) -> None:
    """Print check lines and the verdict.

    Lines keep the `OK:` / `WARN:` / `FAIL:` prefixes so callers can grep them.
    """
    out = out or default_console
    style = {
        CheckStatus.OK: COLORS["ok"],
        CheckStatus.WARN: COLORS["warn"],
        CheckStatus.FAIL: COLORS["fail"],
    }

    out.print(Panel.fit(f"[bold]{result.tool} Preflight[/bold]", border_style="cyan"))
    for check in result.checks:
        color = style[check.status]
        out.print(
            f"[{color}]{check.status.value}:[/{color}] {escape(check.message)}", soft_wrap=True
        )
        for line in check.details:
            out.print(escape(line), style="dim", soft_wrap=True)

    out.print()
    if result.passed:
        out.print(f"[bold green]{result.verdict}[/bold green]", soft_wrap=True)
    else:
        out.print(f"[bold red]{result.verdict}[/bold red]", soft_wrap=True)
    for line in result.fixes:
        out.print(line, soft_wrap=True)
