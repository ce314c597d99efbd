"""Exception hierarchy for branchdo."""

from __future__ import annotations


class BranchdoError(Exception):
    """Base class for all branchdo errors."""


class ConfigError(BranchdoError):
    """The configuration file exists but is invalid."""


class ConfigNotFoundError(ConfigError):
    """An explicitly requested configuration file does not exist."""


class GitError(BranchdoError):
    """git is missing or a git command exited with a non-zero status."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class EditorError(BranchdoError):
    """The external editor could not be started or exited with an error."""


class TimerError(BranchdoError):
    """Timer operation is not valid in the current timer state."""


class TimerRunningElsewhereError(TimerError):
    """The timer is running for a different repository or branch."""

    def __init__(self, folder: str, branch: str) -> None:
        super().__init__(f"Timer running in {folder} [{branch}]!")
        self.folder = folder
        self.branch = branch
