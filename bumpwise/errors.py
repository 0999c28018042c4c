"""Exception hierarchy for the release decision engine.

Every error raised on purpose by bumpwise derives from :class:`BumpwiseError`
so callers can catch one type at the Host Runtime boundary.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional


class BumpwiseError(RuntimeError):
    """Base class for all bumpwise failures."""


class ConfigError(BumpwiseError):
    """Raised when configuration is missing, malformed or out of range."""


class GitOperationError(BumpwiseError):
    """Raised when a git interaction fails."""

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code


class GitCommandError(GitOperationError):
    """A single git subprocess exited with a non-zero status."""

    def __init__(
        self,
        command: str,
        *,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"Git command failed: {command}{detail}", command=command, exit_code=exit_code)
        self.stderr = stderr


class RepositoryNotFoundError(GitOperationError):
    """The working directory is not inside a git repository."""


class RemoteUrlError(GitOperationError):
    """The ``origin`` remote URL cannot be mapped to an owner/name pair."""


class BranchNotFoundError(GitOperationError):
    """A branch could not be resolved locally, remotely or by fetching it."""

    def __init__(self, branch: str) -> None:
        super().__init__(f"Branch '{branch}' does not exist locally or on remote")
        self.branch = branch


class VersionError(BumpwiseError):
    """Raised when a version string or value cannot be parsed or transformed."""

    def __init__(self, message: str, version: Optional[str] = None) -> None:
        super().__init__(message)
        self.version = version


class ProviderError(BumpwiseError):
    """Raised by LLM runners when the provider call fails.

    ``status`` is the HTTP status when one was received. ``retryable`` left as
    ``None`` means the runner made no judgement; the retry policy decides.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class RetryExhaustedError(BumpwiseError):
    """Every attempt allowed by a retry policy failed with a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
        self.__cause__ = last_error


class AIAnalysisError(BumpwiseError):
    """Raised when AI classification cannot produce a usable result."""

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        retryable: bool = True,
        tokens_used: int = 0,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.retryable = retryable
        self.tokens_used = tokens_used
        if cause is not None:
            self.__cause__ = cause


class EngineError(BumpwiseError):
    """Wraps a failed pipeline stage with a stable code and some context."""

    def __init__(
        self,
        message: str,
        code: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context = dict(context or {})


__all__ = [
    "AIAnalysisError",
    "BranchNotFoundError",
    "BumpwiseError",
    "ConfigError",
    "EngineError",
    "GitCommandError",
    "GitOperationError",
    "ProviderError",
    "RemoteUrlError",
    "RepositoryNotFoundError",
    "RetryExhaustedError",
    "VersionError",
]
