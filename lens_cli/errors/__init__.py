"""Error classification for lens-cli."""

from lens_cli.errors.handlers import ErrorHandler
from lens_cli.errors.taxonomy import ClassifiedError, ErrorCategory

__all__ = ["ErrorHandler", "ClassifiedError", "ErrorCategory"]
