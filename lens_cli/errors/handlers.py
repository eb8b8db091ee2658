"""Error classification and fix suggestions for lens-cli."""

import asyncio
import json
from typing import Protocol

from docker.errors import DockerException

from lens_cli.errors.taxonomy import ClassifiedError, ErrorCategory


class FixSuggestionStrategy(Protocol):
    """Protocol for per-category fix suggestions."""

    def can_handle(self, category: ErrorCategory) -> bool:
        """Check if this strategy can phrase a fix for the category."""
        ...

    def suggest(self, context: dict) -> str:
        """Return a human-readable fix suggestion."""
        ...


class CommandNotFoundSuggestion:
    """Suggest installing the missing command."""

    def can_handle(self, category: ErrorCategory) -> bool:
        return category == ErrorCategory.COMMAND_NOT_FOUND

    def suggest(self, context: dict) -> str:
        command = context.get("command", "the command")
        return f"Install {command} and make sure it is on PATH (`command -v {command}`)"


class PermissionDeniedSuggestion:
    """Suggest checking and fixing permissions."""

    def can_handle(self, category: ErrorCategory) -> bool:
        return category == ErrorCategory.PERMISSION_DENIED

    def suggest(self, context: dict) -> str:
        file_path = context.get("file_path", "")
        if file_path:
            return f"Check file permissions: `ls -la {file_path}`"
        return "Check that the current user may access the resource"


class DaemonUnreachableSuggestion:
    """Suggest starting Docker."""

    def can_handle(self, category: ErrorCategory) -> bool:
        return category == ErrorCategory.DAEMON_UNREACHABLE

    def suggest(self, context: dict) -> str:
        return "Start the Docker daemon and confirm `docker info` succeeds"


class TimeoutSuggestion:
    """Suggest running the stalled command by hand."""

    def can_handle(self, category: ErrorCategory) -> bool:
        return category == ErrorCategory.TIMEOUT

    def suggest(self, context: dict) -> str:
        command = context.get("command", "the command")
        return f"Run `{command}` directly to see where it stalls"


class InvalidConfigSuggestion:
    """Suggest fixing a malformed config file."""

    def can_handle(self, category: ErrorCategory) -> bool:
        return category == ErrorCategory.INVALID_CONFIG

    def suggest(self, context: dict) -> str:
        file_path = context.get("file_path", "the config file")
        return f"Fix the JSON in {file_path}"


class ErrorHandler:
    """Central error classifier.

    Maps exceptions from subprocesses, the Docker SDK and config loading to
    an ErrorCategory and a fix suggestion the CLI can print.
    """

    def __init__(self):
        self.strategies: list[FixSuggestionStrategy] = [
            CommandNotFoundSuggestion(),
            PermissionDeniedSuggestion(),
            DaemonUnreachableSuggestion(),
            TimeoutSuggestion(),
            InvalidConfigSuggestion(),
        ]

    def categorize(self, error: Exception, context: dict | None = None) -> ErrorCategory:
        """Pick the category for an exception."""
        context = context or {}
        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return ErrorCategory.TIMEOUT
        if isinstance(error, DockerException):
            return ErrorCategory.DAEMON_UNREACHABLE
        if isinstance(error, PermissionError):
            return ErrorCategory.PERMISSION_DENIED
        if isinstance(error, json.JSONDecodeError):
            return ErrorCategory.INVALID_CONFIG
        if isinstance(error, FileNotFoundError):
            # exec of a missing binary surfaces as ENOENT
            if "command" in context:
                return ErrorCategory.COMMAND_NOT_FOUND
            return ErrorCategory.FILE_NOT_FOUND

        error_str = str(error).lower()

        if "command not found" in error_str:
            return ErrorCategory.COMMAND_NOT_FOUND
        if "permission denied" in error_str:
            return ErrorCategory.PERMISSION_DENIED
        if "failed to load mcp config" in error_str:
            return ErrorCategory.INVALID_CONFIG
        if any(
            x in error_str
            for x in ["docker daemon", "docker.sock", "connection refused", "connection aborted"]
        ):
            return ErrorCategory.DAEMON_UNREACHABLE
        if "timed out" in error_str or "timeout" in error_str:
            return ErrorCategory.TIMEOUT
        return ErrorCategory.TOOL_ERROR

    def suggest_fix(self, category: ErrorCategory, context: dict | None = None) -> str:
        """Phrase a fix for a category using the first strategy that handles it."""
        for strategy in self.strategies:
            if strategy.can_handle(category):
                return strategy.suggest(context or {})
        return "Check the error message above"

    def classify_error(self, error: Exception, context: dict | None = None) -> ClassifiedError:
        """Classify an error into a category with a fix suggestion.

        Args:
            error: The exception to classify
            context: Optional additional context about the error

        Returns:
            ClassifiedError with classification and suggestion
        """
        context = context or {}
        category = self.categorize(error, context)
        suggestion = self.suggest_fix(category, context)

        if category == ErrorCategory.TIMEOUT:
            seconds = context.get("timeout")
            user_message = (
                f"Timed out after {seconds} seconds" if seconds else "Operation timed out"
            )
        elif category == ErrorCategory.COMMAND_NOT_FOUND:
            user_message = f"Command not found: {context.get('command', 'unknown')}"
        elif category == ErrorCategory.DAEMON_UNREACHABLE:
            user_message = f"Docker daemon unreachable: {error}"
        else:
            user_message = str(error) or error.__class__.__name__

        return ClassifiedError(
            category=category,
            original_error=error,
            user_message=user_message,
            fix_suggestion=suggestion,
            context=context,
        )
