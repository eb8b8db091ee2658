"""Error taxonomy and classification for lens-cli."""

from dataclasses import dataclass, field
from enum import Enum


class ErrorCategory(Enum):
    """Classification of errors raised by external tools and config files."""

    FILE_NOT_FOUND = "file_not_found"  # Missing files
    PERMISSION_DENIED = "permission_denied"  # Permission issues
    COMMAND_NOT_FOUND = "command_not_found"  # Missing executables
    TIMEOUT = "timeout"  # Subprocess exceeded its budget
    DAEMON_UNREACHABLE = "daemon_unreachable"  # Docker daemon down or socket missing
    INVALID_CONFIG = "invalid_config"  # Malformed JSON / config structure
    TOOL_ERROR = "tool_error"  # Anything else


@dataclass
class ClassifiedError:
    """An error paired with what the user should do about it.

    Attributes:
        category: The error category
        original_error: The original exception that was raised
        context: Additional context about the error (paths, commands)
        user_message: User-friendly error message
        fix_suggestion: Human-readable suggestion for fixing the error
    """

    category: ErrorCategory
    original_error: Exception
    user_message: str
    fix_suggestion: str
    context: dict = field(default_factory=dict)
