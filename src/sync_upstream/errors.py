"""Exception types raised while syncing."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for failures that end a sync run."""


class ConfigError(SyncError):
    """Raised when inputs or the run environment are incomplete or invalid."""


class GitCommandError(SyncError):
    """Raised when a git invocation exits non-zero."""

    def __init__(self, args: list[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        super().__init__(self.detail)

    @property
    def detail(self) -> str:
        text = self.stderr.strip() or self.stdout.strip()
        if text:
            return text
        return f"The process '{' '.join(self.args_list)}' failed with exit code {self.returncode}"


class MergeConflictError(SyncError):
    """Raised when merging upstream into the sync branch fails."""


class GitHubAPIError(SyncError):
    """Raised when the GitHub REST API returns an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
