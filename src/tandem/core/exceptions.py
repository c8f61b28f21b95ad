"""
Custom exceptions for worktree orchestration, merge previews and tool isolation.

Exception Hierarchy:
    TandemError (base)
    ├── ConfigurationError (missing or contradictory inputs)
    ├── RepositoryStateError (repository is not in a usable state)
    ├── ExternalCommandError (git or setup script exited non-zero)
    ├── SetupScriptTimeoutError (setup script ran past its timeout)
    └── ServerValidationError (unknown tool-server IDs)

Only ConfigurationError and RepositoryStateError escape the public API of the
worktree manager. The others are recovered where they occur and are mostly
used to carry structured context into log records and result objects.

Example:
    >>> from tandem.core.exceptions import ExternalCommandError
    >>> try:
    ...     raise ExternalCommandError(["git", "status"], 128, stderr="fatal: not a repo")
    ... except ExternalCommandError as e:
    ...     print(e.exit_code)
    128
"""


class TandemError(Exception):
    """
    Base exception for all tandem errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ConfigurationError(TandemError):
    """
    Raised when required inputs are missing or invalid.

    For worktree creation this means neither a direct branch name nor a
    category + title pair was supplied.
    """


class RepositoryStateError(TandemError):
    """
    Raised when the repository cannot support the requested operation.

    Covers "not a git repository", a failed automatic initial commit, and a
    worktree directory that is missing after git reported success.

    Attributes:
        path: The path that was being operated on
    """

    def __init__(self, message: str, path: str | None = None, **context: object) -> None:
        super().__init__(message, path=path, **context)
        self.path = path


class ExternalCommandError(TandemError):
    """
    Raised when an external command exits with a non-zero status.

    Attributes:
        command: The command that was executed
        exit_code: Process exit code (None if it never started or was killed)
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        command: list[str],
        exit_code: int | None,
        stdout: str = "",
        stderr: str = "",
        message: str | None = None,
    ) -> None:
        text = message or (stderr.strip() or f"exit code {exit_code}")
        super().__init__(text, command=command, exit_code=exit_code)
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        return f"Command failed ({' '.join(self.command)}): {self.message}"


class SetupScriptTimeoutError(TandemError, TimeoutError):
    """
    Raised internally when a worktree setup script runs past its timeout.

    Never propagated out of worktree creation; it is converted into a failed
    SetupScriptResult.

    Attributes:
        timeout: The timeout that was exceeded, in seconds
    """

    def __init__(self, timeout: float, **context: object) -> None:
        minutes = timeout / 60
        if timeout % 60 == 0:
            text = f"Setup script timed out after {int(minutes)} minutes"
        else:
            text = f"Setup script timed out after {timeout:g}s"
        super().__init__(text, timeout=timeout, **context)
        self.timeout = timeout


class ServerValidationError(TandemError):
    """
    Raised when a task references tool servers missing from the catalog.

    Attributes:
        task_id: The task whose request referenced the servers
        invalid_ids: The server IDs that were not found
    """

    def __init__(self, task_id: str, invalid_ids: list[str]) -> None:
        message = f"Task {task_id} references unknown tool servers: [{', '.join(invalid_ids)}]"
        super().__init__(message, task_id=task_id, invalid_ids=invalid_ids)
        self.task_id = task_id
        self.invalid_ids = invalid_ids


__all__ = [
    "TandemError",
    "ConfigurationError",
    "RepositoryStateError",
    "ExternalCommandError",
    "SetupScriptTimeoutError",
    "ServerValidationError",
]
