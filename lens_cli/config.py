"""Configuration, constants, and environment detection for the CLI."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import dotenv
from rich.console import Console
from rich.logging import RichHandler

dotenv.load_dotenv()

# Color scheme
COLORS = {
    "primary": "#10b981",
    "dim": "#6b7280",
    "ok": "green",
    "warn": "yellow",
    "fail": "red",
}

# Name of the project-level MCP configuration file
MCP_CONFIG_FILENAME = ".mcp.json"

# Environment variable that overrides the MCP config location
MCP_CONFIG_ENV_VAR = "LENS_MCP_CONFIG"

# Directory (relative to a target project) where the review loop keeps its state
STATE_DIR_NAME = ".claude"

# Rich console instance
console = Console(highlight=False)


def _find_project_root(start_path: Path | None = None) -> Path | None:
    """Find the project root by looking for .git directory.

    Walks up the directory tree from start_path (or cwd) looking for a .git
    directory, which indicates the project root.

    Args:
        start_path: Directory to start searching from. Defaults to current working directory.

    Returns:
        Path to the project root if found, None otherwise.
    """
    current = Path(start_path or Path.cwd()).resolve()

    for parent in [current, *list(current.parents)]:
        git_dir = parent / ".git"
        if git_dir.exists():
            return parent

    return None


@dataclass
class Settings:
    """Environment-derived settings for lens-cli.

    Attributes:
        gemini_api_key: Gemini API key if set in the environment
        project_root: Project root (nearest .git ancestor), falls back to the start path
        mcp_config_override: Explicit MCP config path from LENS_MCP_CONFIG
    """

    gemini_api_key: str | None
    project_root: Path
    mcp_config_override: Path | None = None

    @classmethod
    def from_environment(
        cls, *, start_path: Path | None = None, project_root: Path | None = None
    ) -> "Settings":
        """Create settings by detecting the current environment.

        Args:
            start_path: Directory to start project detection from (defaults to cwd)
            project_root: Explicit project root, used as-is instead of detection

        Returns:
            Settings instance with detected configuration
        """
        if project_root is not None:
            project_root = project_root.expanduser().resolve()
        else:
            start = Path(start_path or Path.cwd()).resolve()
            project_root = _find_project_root(start) or start

        override = os.environ.get(MCP_CONFIG_ENV_VAR)

        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            project_root=project_root,
            mcp_config_override=Path(override).expanduser() if override else None,
        )

    @property
    def mcp_config_path(self) -> Path:
        """Location of the MCP config consulted by preflight checks."""
        if self.mcp_config_override is not None:
            return self.mcp_config_override
        return self.project_root / MCP_CONFIG_FILENAME


def state_dir(target: Path) -> Path:
    """Directory holding canary, evidence and metrics files for a target."""
    return target / STATE_DIR_NAME


def configure_logging(verbose: bool = False) -> None:
    """Route module loggers through rich.

    Args:
        verbose: Emit debug records when True, warnings only otherwise
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
