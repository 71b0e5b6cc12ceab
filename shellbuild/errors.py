"""
Error types for shellbuild.

Every error here is fatal to the current build action. Nothing is retried;
the CLI turns any ShellBuildError into exit status 1.
"""

from __future__ import annotations

from typing import Optional


class ShellBuildError(Exception):
    """Base class for all shellbuild errors."""


class InvalidArgument(ShellBuildError, ValueError):
    """A value handed to a command or phase was missing or unusable."""


class ProjectionError(ShellBuildError):
    """An options value could not be projected into command-line tokens."""


class ExecutionFailure(ShellBuildError):
    """A tool or process finished with an exit code the checker rejected.

    Attributes:
        executable: Name of the executable that ran.
        exit_code: The exit code it returned.
    """

    def __init__(self, executable: str, exit_code: int):
        super().__init__(f"{executable}: exit value {exit_code} indicates an error")
        self.executable = executable
        self.exit_code = exit_code


class SpawnFailure(ShellBuildError):
    """The executable could not be started as an external process."""

    def __init__(self, executable: str, cause: Optional[BaseException] = None):
        message = f"execution of {executable} as process failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.executable = executable


class DownloadFailure(ShellBuildError):
    """Fetching an artifact failed on the network or on the local filesystem."""

    def __init__(self, uri: str, cause: Optional[BaseException] = None):
        message = f"download of {uri} failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.uri = uri


class ConfigError(ShellBuildError):
    """The project configuration file could not be read or is malformed."""
