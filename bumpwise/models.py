"""Core data models shared across bumpwise components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class Bump(str, Enum):
    """Magnitude of a version increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"


class Strategy(str, Enum):
    """How the engine decides the bump for a run."""

    CONVENTIONAL = "conventional"
    AI = "ai"
    HYBRID = "hybrid"

    @property
    def uses_ai(self) -> bool:
        return self is not Strategy.CONVENTIONAL


class ChangeCategory(str, Enum):
    """Closed set of changelog categories."""

    BREAKING = "breaking"
    FEAT = "feat"
    FIX = "fix"
    PERF = "perf"
    REFACTOR = "refactor"
    DOCS = "docs"
    STYLE = "style"
    TEST = "test"
    BUILD = "build"
    CI = "ci"
    CHORE = "chore"
    REVERT = "revert"
    DEPS = "deps"


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"


@dataclass(frozen=True)
class Identity:
    """Author or committer of a commit."""

    name: str
    email: str
    date: datetime


@dataclass(frozen=True)
class FileChange:
    """Line-level stats for one path."""

    path: str
    status: FileStatus
    additions: int
    deletions: int


@dataclass(frozen=True)
class CommitInfo:
    """A single commit reachable from the feature branch but not the base."""

    sha: str
    message: str
    author: Identity
    committer: Identity
    files: Tuple[FileChange, ...] = ()
    parents: Tuple[str, ...] = ()

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


@dataclass(frozen=True)
class GitDiff:
    """Commits and file changes between two branches; read-only once built."""

    commits: Tuple[CommitInfo, ...]
    file_changes: Tuple[FileChange, ...]
    total_additions: int
    total_deletions: int
    date_range: Tuple[datetime, datetime]
    contributors: Tuple[str, ...]

    @classmethod
    def build(
        cls,
        commits: Sequence[CommitInfo],
        file_changes: Sequence[FileChange],
        *,
        now: datetime | None = None,
    ) -> "GitDiff":
        """Aggregate totals, contributors and the date range from raw parts.

        ``commits`` must be ordered newest first.
        """
        contributors: List[str] = []
        for commit in commits:
            if commit.author.email not in contributors:
                contributors.append(commit.author.email)
        if commits:
            date_range = (commits[-1].author.date, commits[0].author.date)
        else:
            stamp = now or datetime.now(timezone.utc)
            date_range = (stamp, stamp)
        return cls(
            commits=tuple(commits),
            file_changes=tuple(file_changes),
            total_additions=sum(change.additions for change in file_changes),
            total_deletions=sum(change.deletions for change in file_changes),
            date_range=date_range,
            contributors=tuple(contributors),
        )

    def limited(self, max_commits: int) -> "GitDiff":
        """Return a copy keeping only the newest ``max_commits`` commits."""
        if max_commits <= 0 or len(self.commits) <= max_commits:
            return self
        return GitDiff.build(self.commits[:max_commits], self.file_changes)


@dataclass(frozen=True)
class ChangelogEntry:
    """One categorized change handed to the changelog store."""

    category: ChangeCategory
    description: str
    commit_sha: str
    author: str
    is_breaking: bool = False
    scope: Optional[str] = None
    pull_request: Optional[int] = None
    issues: Tuple[int, ...] = ()
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "description": self.description,
            "commit_sha": self.commit_sha,
            "author": self.author,
            "is_breaking": self.is_breaking,
            "scope": self.scope,
            "pull_request": self.pull_request,
            "issues": list(self.issues),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class BreakingChange:
    """Breaking change reported by the AI classifier."""

    description: str
    migration: str = ""
    affected: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnalysisMetadata:
    """Execution facts recorded alongside a decision."""

    commits_analyzed: int
    files_changed: int
    total_additions: int = 0
    total_deletions: int = 0
    contributors: int = 0
    execution_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    model: Optional[str] = None
    tokens_used: int = 0
    estimated_cost: float = 0.0
    warnings: Tuple[str, ...] = ()

    @classmethod
    def for_diff(cls, diff: GitDiff, **extra: Any) -> "AnalysisMetadata":
        return cls(
            commits_analyzed=len(diff.commits),
            files_changed=len(diff.file_changes),
            total_additions=diff.total_additions,
            total_deletions=diff.total_deletions,
            contributors=len(diff.contributors),
            **extra,
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Terminal artifact of one engine run."""

    bump: Bump
    confidence: Optional[float]
    reasoning: Tuple[str, ...]
    entries: Tuple[ChangelogEntry, ...]
    strategy: Strategy
    breaking: bool
    metadata: AnalysisMetadata
    breaking_changes: Tuple[BreakingChange, ...] = ()

    @property
    def commit_count(self) -> int:
        return self.metadata.commits_analyzed

    @property
    def file_count(self) -> int:
        return self.metadata.files_changed

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-safe mapping for Host Runtime adapters."""
        meta = self.metadata
        return {
            "bump": self.bump.value,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "entries": [entry.to_dict() for entry in self.entries],
            "strategy": self.strategy.value,
            "breaking": self.breaking,
            "breaking_changes": [
                {
                    "description": change.description,
                    "migration": change.migration,
                    "affected": list(change.affected),
                }
                for change in self.breaking_changes
            ],
            "metadata": {
                "commits_analyzed": meta.commits_analyzed,
                "files_changed": meta.files_changed,
                "total_additions": meta.total_additions,
                "total_deletions": meta.total_deletions,
                "contributors": meta.contributors,
                "execution_time_ms": round(meta.execution_time_ms, 3),
                "timestamp": meta.timestamp.isoformat(),
                "model": meta.model,
                "tokens_used": meta.tokens_used,
                "estimated_cost": meta.estimated_cost,
                "warnings": list(meta.warnings),
            },
        }


def entries_are_breaking(entries: Iterable[ChangelogEntry]) -> bool:
    return any(entry.is_breaking for entry in entries)


__all__ = [
    "AnalysisMetadata",
    "AnalysisResult",
    "BreakingChange",
    "Bump",
    "ChangeCategory",
    "ChangelogEntry",
    "CommitInfo",
    "FileChange",
    "FileStatus",
    "GitDiff",
    "Identity",
    "Strategy",
    "entries_are_breaking",
]
