"""Lens CLI - preflight checks and quality gate for the review loop."""

from lens_cli.main import cli_main

__all__ = ["cli_main"]
