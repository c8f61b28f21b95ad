"""Tests for process execution."""

from __future__ import annotations

import sys
import time

import pytest

from tandem.core.process import (
    IS_UNIX,
    AsyncProcessRunner,
    ProcessResult,
    ProcessRunner,
    run_process,
)


class TestProcessResult:
    """Tests for ProcessResult model."""

    def test_defaults(self):
        """Timing and failure fields default to a clean run."""
        result = ProcessResult(success=True, exit_code=0, stdout="out", stderr="")
        assert result.duration_ms == 0
        assert result.timed_out is False
        assert result.error is None

    def test_timeout_result(self):
        """A timed-out result carries no exit code."""
        result = ProcessResult(
            success=False,
            exit_code=None,
            stdout="",
            stderr="",
            timed_out=True,
            error="Process timed out after 5s",
        )
        assert result.timed_out is True
        assert result.exit_code is None


class TestAsyncProcessRunner:
    """Tests for the default runner."""

    def test_satisfies_protocol(self):
        """AsyncProcessRunner is a ProcessRunner."""
        assert isinstance(AsyncProcessRunner(), ProcessRunner)

    @pytest.mark.asyncio
    async def test_run_delegates(self, tmp_path):
        """The runner executes in the given cwd."""
        result = await AsyncProcessRunner().run(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=str(tmp_path)
        )
        assert result.success is True
        assert result.stdout.strip() == str(tmp_path.resolve())


class TestRunProcess:
    """Tests for run_process."""

    @pytest.mark.asyncio
    async def test_captures_stdout_and_stderr(self):
        """Both streams are decoded and returned."""
        result = await run_process(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"]
        )
        assert result.success is True
        assert result.exit_code == 0
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_not_raised(self):
        """A failing command is reported, not raised."""
        result = await run_process([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.success is False
        assert result.exit_code == 3
        assert result.error is None

    @pytest.mark.asyncio
    async def test_missing_command(self):
        """An unknown executable yields an error result."""
        result = await run_process(["definitely-not-a-real-command-xyz"])
        assert result.success is False
        assert result.exit_code is None
        assert "Command not found" in (result.error or "")

    @pytest.mark.asyncio
    async def test_missing_cwd(self, tmp_path):
        """A cwd that does not exist yields an error result."""
        result = await run_process(
            [sys.executable, "-c", "pass"], cwd=str(tmp_path / "does-not-exist")
        )
        assert result.success is False
        assert result.exit_code is None
        assert result.error is not None

    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        """Extra env vars are visible alongside the inherited environment."""
        result = await run_process(
            [sys.executable, "-c", "import os; print(os.environ['TANDEM_TEST_VAR'])"],
            env={"TANDEM_TEST_VAR": "hello"},
        )
        assert result.stdout.strip() == "hello"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        """A command exceeding its timeout is terminated and flagged."""
        started = time.monotonic()
        result = await run_process(
            [sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5
        )
        assert result.success is False
        assert result.timed_out is True
        assert result.exit_code is None
        assert "timed out" in (result.error or "")
        assert time.monotonic() - started < 10

    @pytest.mark.asyncio
    @pytest.mark.skipif(not IS_UNIX, reason="process groups are Unix-only")
    async def test_timeout_escalates_to_sigkill(self):
        """A child ignoring SIGTERM is killed after the grace period."""
        script = (
            "import signal, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )
        started = time.monotonic()
        result = await run_process([sys.executable, "-c", script], timeout=0.5)
        assert result.timed_out is True
        assert time.monotonic() - started < 10
