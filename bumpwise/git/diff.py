"""Branch diff collection."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Sequence

from ..errors import GitCommandError
from ..logging import get_logger
from ..models import CommitInfo, FileChange, FileStatus, GitDiff, Identity
from .refs import DEFAULT_RESOLVERS, RefResolver, resolve_branch
from .repository import GitRepository, Runner

# %x1f (unit separator) keeps subjects containing "|" intact.
_LOG_FIELDS = ("%H", "%s", "%an", "%ae", "%at", "%cn", "%ce", "%ct")
_LOG_FORMAT = "%x1f".join(_LOG_FIELDS)
_FIELD_SEPARATOR = "\x1f"


class DiffCollector:
    """Resolves two branches and summarises what the feature branch adds.

    The commit range is ``base..feature``: commits reachable from the feature
    branch but not from the base branch, newest first. The repository must be
    a checkout with a GitHub ``origin`` remote before any branch is resolved.
    """

    def __init__(
        self,
        repo: GitRepository | str | Path = ".",
        *,
        runner: Runner | None = None,
        resolvers: Sequence[RefResolver] = DEFAULT_RESOLVERS,
    ) -> None:
        self.repo = repo if isinstance(repo, GitRepository) else GitRepository(repo, runner=runner)
        self.resolvers = tuple(resolvers)
        self.logger = get_logger("git.diff")

    def collect(self, base_branch: str, feature_branch: str) -> GitDiff:
        info = self.repo.validate()
        self.logger.debug("Repository %s/%s (current branch %s)", info.owner, info.name, info.default_branch)
        base_ref = resolve_branch(self.repo, base_branch, self.resolvers)
        feature_ref = resolve_branch(self.repo, feature_branch, self.resolvers)
        self.logger.info("Collecting changes %s..%s", base_ref, feature_ref)

        commits = self._commits_between(base_ref, feature_ref)
        file_changes = self._file_changes_between(base_ref, feature_ref)
        diff = GitDiff.build(commits, file_changes)
        self.logger.info(
            "Found %d commits touching %d files (+%d/-%d)",
            len(diff.commits),
            len(diff.file_changes),
            diff.total_additions,
            diff.total_deletions,
        )
        return diff

    # ------------------------------------------------------------------
    # Internals

    def _commits_between(self, base_ref: str, feature_ref: str) -> List[CommitInfo]:
        output = self.repo.git("log", f"--pretty=format:{_LOG_FORMAT}", f"{base_ref}..{feature_ref}")
        commits: List[CommitInfo] = []
        for line in output.splitlines():
            fields = line.split(_FIELD_SEPARATOR)
            if len(fields) < len(_LOG_FIELDS):
                continue
            (
                sha,
                subject,
                author_name,
                author_email,
                author_ts,
                committer_name,
                committer_email,
                committer_ts,
            ) = fields[: len(_LOG_FIELDS)]
            if not sha or not subject:
                continue
            commits.append(
                CommitInfo(
                    sha=sha,
                    message=subject,
                    author=Identity(
                        name=author_name or "Unknown",
                        email=author_email or "unknown@unknown.com",
                        date=_from_timestamp(author_ts),
                    ),
                    committer=Identity(
                        name=committer_name or "Unknown",
                        email=committer_email or "unknown@unknown.com",
                        date=_from_timestamp(committer_ts),
                    ),
                    files=tuple(self._files_in_commit(sha)),
                    parents=tuple(self._parents_of(sha)),
                )
            )
        return commits

    def _files_in_commit(self, sha: str) -> List[FileChange]:
        # Per-commit stats are informational; a failure here never aborts the diff.
        try:
            output = self.repo.git("show", "--numstat", "--format=", sha)
        except GitCommandError as exc:
            self.logger.debug("Could not get file changes for commit %s: %s", sha, exc)
            return []
        return [
            FileChange(path=path, status=FileStatus.MODIFIED, additions=added, deletions=deleted)
            for added, deleted, path in _parse_numstat(output)
        ]

    def _parents_of(self, sha: str) -> List[str]:
        output = self.repo.git("rev-list", "--parents", "-n", "1", sha).strip()
        return output.split()[1:]

    def _file_changes_between(self, base_ref: str, feature_ref: str) -> List[FileChange]:
        output = self.repo.git("diff", "--numstat", f"{base_ref}..{feature_ref}")
        return [
            FileChange(
                path=path,
                status=infer_status(added, deleted),
                additions=added,
                deletions=deleted,
            )
            for added, deleted, path in _parse_numstat(output)
        ]


def infer_status(additions: int, deletions: int) -> FileStatus:
    """Renames and copies are not distinguished; they report as modified."""
    if deletions == 0 and additions > 0:
        return FileStatus.ADDED
    if additions == 0 and deletions > 0:
        return FileStatus.DELETED
    return FileStatus.MODIFIED


def _parse_numstat(output: str) -> List[tuple[int, int, str]]:
    rows: List[tuple[int, int, str]] = []
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3 or not parts[2].strip():
            continue
        rows.append((_as_count(parts[0]), _as_count(parts[1]), parts[2].strip()))
    return rows


def _as_count(value: str) -> int:
    # Binary files report "-" for both columns.
    try:
        return int(value)
    except ValueError:
        return 0


def _from_timestamp(value: str) -> datetime:
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        seconds = 0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


__all__ = ["DiffCollector", "infer_status"]
