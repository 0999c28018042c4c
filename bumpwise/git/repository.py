"""Thin wrapper around the git CLI for the commands the engine needs."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..errors import GitCommandError, RemoteUrlError, RepositoryNotFoundError
from ..logging import get_logger

Runner = Callable[..., str]

_REMOTE_PATTERNS = (
    re.compile(r"^https://github\.com/([^/]+)/([^/]+?)(?:\.git)?/?$"),
    re.compile(r"^git@github\.com:([^/]+)/([^/]+?)(?:\.git)?$"),
    re.compile(r"^ssh://git@github\.com/([^/]+)/([^/]+?)(?:\.git)?$"),
)

_INVALID_BRANCH_PATTERNS = (
    re.compile(r"^-"),
    re.compile(r"/$"),
    re.compile(r"\.\."),
    re.compile(r"[\[\]~^:?*\\]"),
    re.compile(r"^@$"),
    re.compile(r"@\{"),
    re.compile(r"\s"),
)


@dataclass(frozen=True)
class RepositoryInfo:
    owner: str
    name: str
    default_branch: str


class GitRepository:
    """Runs git commands inside ``path`` through an injectable runner.

    The runner signature is ``runner(args, *, cwd, capture_output=False) -> str``
    and it must raise ``subprocess.CalledProcessError`` on failure, which is what
    the default ``subprocess.run(..., check=True)`` runner does.
    """

    def __init__(self, path: str | Path = ".", runner: Runner | None = None) -> None:
        self.path = Path(path).expanduser().resolve()
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def git(self, *args: str) -> str:
        """Run ``git <args>`` and return stdout; raise ``GitCommandError`` on failure."""
        command = ["git", *args]
        rendered = " ".join(command)
        self.logger.debug("Executing: %s", rendered)
        try:
            return self._runner(command, cwd=self.path, capture_output=True)
        except subprocess.CalledProcessError as exc:
            raise GitCommandError(
                rendered,
                exit_code=exc.returncode,
                stderr=_as_text(exc.stderr),
            ) from exc
        except FileNotFoundError as exc:
            raise GitCommandError(rendered, stderr="git executable not found") from exc

    def succeeds(self, *args: str) -> bool:
        try:
            self.git(*args)
        except GitCommandError:
            return False
        return True

    def validate(self) -> RepositoryInfo:
        """Confirm this is a git checkout with a GitHub ``origin`` remote."""
        try:
            self.git("rev-parse", "--git-dir")
        except GitCommandError as exc:
            raise RepositoryNotFoundError(
                f"{self.path} is not a Git repository", command=exc.command, exit_code=exc.exit_code
            ) from exc

        try:
            remote_url = self.git("remote", "get-url", "origin").strip()
        except GitCommandError as exc:
            raise RemoteUrlError(
                f"{self.path} has no origin remote", command=exc.command, exit_code=exc.exit_code
            ) from exc
        owner, name = parse_repository_url(remote_url)

        default_branch = "main"
        try:
            current = self.git("rev-parse", "--abbrev-ref", "HEAD").strip()
        except GitCommandError:
            self.logger.debug('Could not determine current branch, using "main" as default')
        else:
            if current and current != "HEAD":
                default_branch = current

        return RepositoryInfo(owner=owner, name=name, default_branch=default_branch)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


def parse_repository_url(url: str) -> tuple[str, str]:
    """Return ``(owner, name)`` for GitHub HTTPS or SSH remote URLs."""
    cleaned = url.strip()
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(cleaned)
        if match and match.group(1) and match.group(2):
            return match.group(1), match.group(2)
    raise RemoteUrlError(f"Unable to parse repository URL: {url}")


def is_valid_branch_name(name: str) -> bool:
    if not name:
        return False
    return not any(pattern.search(name) for pattern in _INVALID_BRANCH_PATTERNS)


def sanitize_branch_name(name: str) -> str:
    lowered = re.sub(r"[^a-z0-9\-_.]", "-", name.lower())
    collapsed = re.sub(r"-+", "-", lowered)
    return collapsed.strip("-")


def format_commit_message(change_type: str, scope: Optional[str], description: str) -> str:
    scope_part = f"({scope})" if scope else ""
    return f"{change_type}{scope_part}: {description}"


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    return str(value)


__all__ = [
    "GitRepository",
    "RepositoryInfo",
    "Runner",
    "format_commit_message",
    "is_valid_branch_name",
    "parse_repository_url",
    "sanitize_branch_name",
]
