"""Docker availability probe."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass

import docker
from docker.errors import DockerException

from lens_cli.errors import ErrorCategory, ErrorHandler

logger = logging.getLogger(__name__)


@dataclass
class DockerStatus:
    """Outcome of probing the Docker daemon.

    Attributes:
        available: Whether the CLI exists and the daemon answered a ping
        detail: Executable path on success, reason on failure
        fix_suggestion: What to do about a failure, if anything
    """

    available: bool
    detail: str
    fix_suggestion: str | None = None


def docker_available(timeout: int = 10) -> DockerStatus:
    """Check that the docker executable is on PATH and the daemon is reachable.

    Equivalent to `command -v docker && docker info`, with the daemon probe
    going through the Docker SDK instead of a subprocess.

    Args:
        timeout: Seconds to wait for the daemon to answer

    Returns:
        DockerStatus describing the result. Never raises.
    """
    handler = ErrorHandler()
    executable = shutil.which("docker")
    if executable is None:
        return DockerStatus(
            available=False,
            detail="docker executable not in PATH",
            fix_suggestion=handler.suggest_fix(
                ErrorCategory.COMMAND_NOT_FOUND, {"command": "docker"}
            ),
        )

    try:
        client = docker.from_env(timeout=timeout)
        try:
            client.ping()
        finally:
            client.close()
    except DockerException as e:
        classified = handler.classify_error(e, {"command": "docker"})
        logger.debug("Docker ping failed: %s", classified.user_message)
        return DockerStatus(
            available=False,
            detail=classified.user_message,
            fix_suggestion=classified.fix_suggestion,
        )

    return DockerStatus(available=True, detail=executable)
