"""
Pytest configuration and shared fixtures.

Provides a scripted ProcessRunner for unit tests, real git repositories for
integration tests, and config isolation so no test reads the developer's
own tandem configuration.
"""

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest

from tandem.core.config import clear_cache
from tandem.core.isolation import ToolServerConfig
from tandem.core.process import ProcessResult


# ==============================================================================
# Scripted Process Runner
# ==============================================================================


@dataclass
class RecordedCall:
    command: list[str]
    cwd: str | None
    timeout: float | None


@dataclass
class _Script:
    prefix: tuple[str, ...]
    result: ProcessResult
    effect: Callable[[list[str], str | None], None] | None


class FakeRunner:
    """
    ProcessRunner that records calls and returns scripted results.

    Responses are matched by command prefix; the most recently registered
    match wins. Unmatched commands succeed with empty output.

    Example:
        runner = FakeRunner()
        runner.on("git", "branch", "--show-current", stdout="main\\n")
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._scripts: list[_Script] = []

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        exit_code: int | None = 0,
        error: str | None = None,
        timed_out: bool = False,
        effect: Callable[[list[str], str | None], None] | None = None,
    ) -> "FakeRunner":
        result = ProcessResult(
            success=exit_code == 0 and not timed_out,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            error=error,
        )
        self._scripts.append(_Script(tuple(prefix), result, effect))
        return self

    async def run(
        self,
        command: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> ProcessResult:
        self.calls.append(RecordedCall(list(command), cwd, timeout))
        for script in reversed(self._scripts):
            if tuple(command[: len(script.prefix)]) == script.prefix:
                if script.effect is not None:
                    script.effect(command, cwd)
                return script.result
        return ProcessResult(success=True, exit_code=0, stdout="", stderr="")

    @property
    def commands(self) -> list[list[str]]:
        return [call.command for call in self.calls]

    def called(self, *prefix: str) -> bool:
        return any(tuple(cmd[: len(prefix)]) == prefix for cmd in self.commands)

    def calls_to(self, *prefix: str) -> list[RecordedCall]:
        return [call for call in self.calls if tuple(call.command[: len(prefix)]) == prefix]


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Provide a fresh scripted runner."""
    return FakeRunner()


# ==============================================================================
# Git Repository Fixtures
# ==============================================================================


def git(repo: Path, *args: str) -> str:
    """Run a git command in repo and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on branch main, without commits."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    repo.mkdir()

    git(repo, "init")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")

    return repo


@pytest.fixture
def git_repo_with_commit(git_repo: Path) -> Path:
    """Create a git repo with an initial commit on main."""
    (git_repo / "README.md").write_text("# Test Repo\n")
    git(git_repo, "add", "README.md")
    git(git_repo, "commit", "-m", "Initial commit")
    return git_repo


# ==============================================================================
# Config Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point user config at an empty directory and drop cached configs."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("TANDEM_WORKTREES_DIR", "TANDEM_SETUP_TIMEOUT", "TANDEM_BASE_BRANCH"):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Tool Server Fixtures
# ==============================================================================


@pytest.fixture
def sample_servers() -> list[ToolServerConfig]:
    """A small catalog with one stdio and one http server."""
    return [
        ToolServerConfig.model_validate(
            {
                "id": "a",
                "name": "Filesystem",
                "transport": {"type": "stdio", "command": "npx", "args": ["-y", "server-fs"]},
                "custom_prompt": "Only touch files inside the worktree.",
            }
        ),
        ToolServerConfig.model_validate(
            {
                "id": "c",
                "name": "Search",
                "transport": {
                    "type": "http",
                    "url": "https://search.example.com/mcp",
                    "headers": {"Authorization": "Bearer token"},
                },
                "enabled": False,
            }
        ),
    ]
