"""
Process execution for git plumbing and worktree setup scripts.

This module provides:
- ProcessResult, the structured outcome of a child process
- ProcessRunner, the protocol the core services depend on
- AsyncProcessRunner, the default asyncio-based implementation
- Timeout handling that sends SIGTERM to the child's process group and
  escalates to SIGKILL if it does not exit

Every coroutine in this module is a suspension point. Nothing else in the
core services awaits.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"
IS_UNIX = not IS_WINDOWS

# Grace period between SIGTERM and SIGKILL
TERMINATE_GRACE_SECONDS = 2.0


class ProcessResult(BaseModel):
    """Structured result from process execution."""

    success: bool
    """Whether the process completed successfully (exit code 0)."""

    exit_code: int | None
    """Process exit code, or None if it never started or was killed."""

    stdout: str
    """Standard output from the process."""

    stderr: str
    """Standard error from the process."""

    duration_ms: int = 0
    """Execution duration in milliseconds."""

    timed_out: bool = False
    """Whether the process was terminated due to timeout."""

    error: str | None = None
    """Error message if execution failed before producing an exit code."""


@runtime_checkable
class ProcessRunner(Protocol):
    """Anything that can run a command in a directory and await its result."""

    async def run(
        self,
        command: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessResult: ...


class AsyncProcessRunner:
    """
    Default ProcessRunner backed by asyncio subprocesses.

    Example:
        >>> runner = AsyncProcessRunner()
        >>> result = await runner.run(["git", "status"], cwd="/path/to/repo")
        >>> result.success
        True
    """

    async def run(
        self,
        command: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        return await run_process(command, cwd=cwd, timeout=timeout, env=env)


def _elapsed_ms(started_at: datetime) -> int:
    return int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)


async def run_process(
    command: list[str],
    *,
    timeout: float | None = None,
    env: dict[str, str] | None = None,
    cwd: str | None = None,
) -> ProcessResult:
    """
    Run a subprocess with an optional timeout.

    Non-zero exits, missing executables and timeouts are all reported in the
    returned ProcessResult; this function does not raise for them.

    Args:
        command: Command and arguments as a list (e.g., ["git", "status"])
        timeout: Optional timeout in seconds. None means no timeout.
        env: Optional environment variables, merged over os.environ.
        cwd: Optional working directory for the process.

    Returns:
        ProcessResult with output, exit code, and timing information.
    """
    started_at = datetime.now(timezone.utc)
    process: asyncio.subprocess.Process | None = None

    process_env = None
    if env is not None:
        process_env = os.environ.copy()
        process_env.update(env)

    try:
        kwargs: dict[str, Any] = {
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
            "cwd": cwd,
            "env": process_env,
        }
        # New session so the whole group can be signalled on timeout
        if IS_UNIX:
            kwargs["start_new_session"] = True

        logger.debug("Running process: %s (cwd=%s)", " ".join(command), cwd)
        process = await asyncio.create_subprocess_exec(*command, **kwargs)

        try:
            if timeout is not None:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
            else:
                stdout_bytes, stderr_bytes = await process.communicate()
        except asyncio.TimeoutError:
            await terminate_process_group(process)
            return ProcessResult(
                success=False,
                exit_code=None,
                stdout="",
                stderr="",
                duration_ms=_elapsed_ms(started_at),
                timed_out=True,
                error=f"Process timed out after {timeout}s",
            )

        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""

        return ProcessResult(
            success=process.returncode == 0,
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=_elapsed_ms(started_at),
        )

    except FileNotFoundError:
        return ProcessResult(
            success=False,
            exit_code=None,
            stdout="",
            stderr="",
            duration_ms=_elapsed_ms(started_at),
            error=f"Command not found: {command[0]}. Ensure it is installed and in PATH.",
        )

    except OSError as e:
        # Typically a cwd that does not exist
        return ProcessResult(
            success=False,
            exit_code=None,
            stdout="",
            stderr="",
            duration_ms=_elapsed_ms(started_at),
            error=f"Failed to start {command[0]}: {e}",
        )

    finally:
        if process is not None and process.returncode is None:
            await terminate_process_group(process)


def _signal_group(process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    if IS_UNIX:
        try:
            os.killpg(os.getpgid(process.pid), sig)
            return
        except (ProcessLookupError, OSError) as e:
            logger.debug("Process group signal failed (process may be dead): %s", e)
    if sig == signal.SIGTERM:
        process.terminate()
    else:
        process.kill()


async def terminate_process_group(process: asyncio.subprocess.Process) -> None:
    """
    Stop a child process and everything it spawned.

    Sends SIGTERM to the process group, waits up to TERMINATE_GRACE_SECONDS,
    then sends SIGKILL.

    Args:
        process: The subprocess to stop.
    """
    if process.returncode is not None:
        return

    try:
        logger.debug("Terminating process %s", process.pid)
        _signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
            return
        except asyncio.TimeoutError:
            logger.debug("Process %s ignored SIGTERM, killing", process.pid)

        _signal_group(process, signal.SIGKILL if IS_UNIX else signal.SIGTERM)
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Process %s did not exit after SIGKILL", process.pid)
    except (ProcessLookupError, OSError) as e:
        logger.debug("Process termination skipped (already dead): %s", e)


__all__ = [
    "AsyncProcessRunner",
    "IS_UNIX",
    "IS_WINDOWS",
    "ProcessResult",
    "ProcessRunner",
    "run_process",
    "terminate_process_group",
]
