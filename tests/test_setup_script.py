"""Tests for worktree setup scripts."""

import sys

import pytest

from tandem.core.worktree.setup_script import (
    SETUP_SCRIPT_TIMEOUT_SECONDS,
    run_setup_script,
    shell_command,
)


class TestShellCommand:
    """Tests for shell_command."""

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
    def test_posix_shell(self):
        assert shell_command("npm ci") == ["/bin/sh", "-c", "npm ci"]


class TestRunSetupScript:
    """Tests for run_setup_script with a scripted runner."""

    @pytest.mark.asyncio
    async def test_success(self, fake_runner):
        fake_runner.on("/bin/sh", stdout="installed\n")
        result = await run_setup_script("/wt", "npm ci", runner=fake_runner)

        assert result.success is True
        assert result.output == "installed\n"
        assert result.timed_out is False
        call = fake_runner.calls[0]
        assert call.cwd == "/wt"
        assert call.timeout == SETUP_SCRIPT_TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_nonzero_exit_uses_stderr(self, fake_runner):
        fake_runner.on("/bin/sh", stderr="npm ERR! missing lockfile", exit_code=1)
        result = await run_setup_script("/wt", "npm ci", runner=fake_runner)

        assert result.success is False
        assert result.error == "npm ERR! missing lockfile"

    @pytest.mark.asyncio
    async def test_nonzero_exit_without_stderr(self, fake_runner):
        fake_runner.on("/bin/sh", exit_code=7)
        result = await run_setup_script("/wt", "false", runner=fake_runner)

        assert result.error == "Exit code: 7"

    @pytest.mark.asyncio
    async def test_timeout_is_captured(self, fake_runner):
        fake_runner.on("/bin/sh", exit_code=None, timed_out=True)
        result = await run_setup_script("/wt", "sleep 999", runner=fake_runner)

        assert result.success is False
        assert result.timed_out is True
        assert result.error == "Setup script timed out after 5 minutes"

    @pytest.mark.asyncio
    async def test_failed_start(self, fake_runner):
        fake_runner.on("/bin/sh", exit_code=None, error="Failed to start /bin/sh")
        result = await run_setup_script("/wt", "anything", runner=fake_runner)

        assert result.success is False
        assert result.error == "Failed to start /bin/sh"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
class TestRunSetupScriptForReal:
    """Tests for run_setup_script against a real shell."""

    @pytest.mark.asyncio
    async def test_runs_in_worktree(self, tmp_path):
        result = await run_setup_script(str(tmp_path), "echo ok > marker.txt")
        assert result.success is True
        assert (tmp_path / "marker.txt").read_text().strip() == "ok"

    @pytest.mark.asyncio
    async def test_short_timeout(self, tmp_path):
        result = await run_setup_script(str(tmp_path), "sleep 30", timeout=0.5)
        assert result.timed_out is True
        assert result.error == "Setup script timed out after 0.5s"
