"""
Run a shell setup script inside a freshly created worktree.

Failures and timeouts are captured in a SetupScriptResult. Nothing here
raises to the caller.
"""

from __future__ import annotations

import logging
import sys

from tandem.core.exceptions import SetupScriptTimeoutError
from tandem.core.process import AsyncProcessRunner, ProcessRunner
from tandem.core.worktree.models import SetupScriptResult

logger = logging.getLogger(__name__)

# Hard wall-clock limit for setup scripts (5 minutes)
SETUP_SCRIPT_TIMEOUT_SECONDS = 5 * 60


def shell_command(script: str) -> list[str]:
    """Wrap a script string for the platform shell."""
    if sys.platform == "win32":
        return ["cmd.exe", "/c", script]
    return ["/bin/sh", "-c", script]


async def run_setup_script(
    worktree_path: str,
    script: str,
    runner: ProcessRunner | None = None,
    timeout: float = SETUP_SCRIPT_TIMEOUT_SECONDS,
) -> SetupScriptResult:
    """
    Run script in worktree_path with a timeout.

    Args:
        worktree_path: Directory the script runs in
        script: Shell command line
        runner: ProcessRunner to use (defaults to AsyncProcessRunner)
        timeout: Seconds before the script is terminated

    Returns:
        SetupScriptResult describing success, output, or the failure
    """
    runner = runner or AsyncProcessRunner()
    command = shell_command(script)
    logger.info("Running setup script in %s: %s", worktree_path, script)

    result = await runner.run(command, cwd=worktree_path, timeout=timeout)

    for line in result.stdout.splitlines():
        if line.strip():
            logger.debug("[setup] %s", line.strip())
    for line in result.stderr.splitlines():
        if line.strip():
            logger.warning("[setup] %s", line.strip())

    if result.timed_out:
        error = SetupScriptTimeoutError(timeout, worktree_path=worktree_path)
        logger.error("%s", error)
        return SetupScriptResult(success=False, error=str(error), timed_out=True)

    if result.exit_code is None:
        logger.error("Setup script failed to start: %s", result.error)
        return SetupScriptResult(success=False, error=result.error or "Setup script failed to start")

    if not result.success:
        logger.error("Setup script exited with code %s", result.exit_code)
        return SetupScriptResult(
            success=False,
            output=result.stdout or None,
            error=result.stderr or f"Exit code: {result.exit_code}",
        )

    logger.info("Setup script completed successfully")
    return SetupScriptResult(success=True, output=result.stdout)


__all__ = ["SETUP_SCRIPT_TIMEOUT_SECONDS", "run_setup_script", "shell_command"]
