"""Subprocess execution with streamed output.

Linters are run to completion through `stream_subprocess_output`, which
captures combined stdout/stderr and enforces a hard timeout.
"""

from __future__ import annotations

import asyncio
import os
from typing import Callable, Sequence


async def stream_subprocess_output(
    argv: Sequence[str],
    working_dir: str,
    callback: Callable[[str], None] | None = None,
    timeout: float = 300.0,
    env: dict[str, str] | None = None,
) -> tuple[int, str]:
    """Execute a command with real-time output streaming.

    The command is executed directly from its argument vector; no shell is
    involved.

    Args:
        argv: Program and arguments
        working_dir: Working directory
        callback: Callback for each output line
        timeout: Maximum execution time in seconds
        env: Optional environment variables

    Returns:
        Tuple of (exit_code, full_output)

    Raises:
        asyncio.TimeoutError: If process exceeds timeout
        FileNotFoundError: If the program does not exist
    """
    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        stdin=asyncio.subprocess.DEVNULL,
        cwd=working_dir,
        env=process_env,
    )

    output_lines: list[str] = []

    async def read_stream() -> None:
        while True:
            if process.stdout is None:
                break
            line = await process.stdout.readline()
            if not line:
                break
            decoded = line.decode("utf-8", errors="replace").rstrip("\n\r")
            output_lines.append(decoded)
            if callback is not None:
                callback(decoded)

    try:
        await asyncio.wait_for(read_stream(), timeout=timeout)
        await process.wait()
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    return process.returncode or 0, "\n".join(output_lines)


def run_command(
    argv: Sequence[str],
    working_dir: str,
    timeout: float = 300.0,
) -> tuple[int, str]:
    """Blocking wrapper around `stream_subprocess_output`."""
    return asyncio.run(stream_subprocess_output(argv, working_dir, timeout=timeout))
