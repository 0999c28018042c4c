"""Deterministic conventional-commit classification.

Used on its own for the ``conventional`` strategy and as the fallback for
``hybrid``. Nothing here touches the network or the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..models import Bump, ChangeCategory, ChangelogEntry, CommitInfo

# Order matters: the first matching prefix wins.
TYPE_PREFIXES: tuple[ChangeCategory, ...] = (
    ChangeCategory.FEAT,
    ChangeCategory.FIX,
    ChangeCategory.DOCS,
    ChangeCategory.STYLE,
    ChangeCategory.REFACTOR,
    ChangeCategory.PERF,
    ChangeCategory.TEST,
    ChangeCategory.BUILD,
    ChangeCategory.CI,
    ChangeCategory.CHORE,
    ChangeCategory.REVERT,
)
DEFAULT_CATEGORY = ChangeCategory.CHORE
BREAKING_MARKER = "BREAKING CHANGE"

_SCOPE_PATTERN = re.compile(r"^[A-Za-z]+\(([^)]+)\)!?:")
_PREFIX_PATTERN = re.compile(r"^[A-Za-z]+(?:\([^)]+\))?!?:\s*")
_CONVENTIONAL_PATTERN = re.compile(r"^[a-z]+(?:\([^)]+\))?!?:\s*.+")
_PULL_REQUEST_PATTERN = re.compile(r"\(#(\d+)\)\s*$")


@dataclass(frozen=True)
class ConventionalCommit:
    """Structured view of a commit message."""

    type: ChangeCategory
    scope: Optional[str]
    description: str
    is_breaking: bool
    raw_message: str


class ConventionalClassifier:
    """Categorizes commit messages and infers a bump from them."""

    def classify(self, message: str) -> ConventionalCommit:
        return ConventionalCommit(
            type=categorize(message),
            scope=extract_scope(message),
            description=clean_description(message),
            is_breaking=is_breaking_change(message),
            raw_message=message,
        )

    def determine_bump(self, commits: Sequence[CommitInfo]) -> Bump:
        """Breaking beats feat beats fix; any other commit still yields a patch."""
        if not commits:
            return Bump.NONE
        parsed = [self.classify(commit.message) for commit in commits]
        if any(item.is_breaking for item in parsed):
            return Bump.MAJOR
        if any(item.type is ChangeCategory.FEAT for item in parsed):
            return Bump.MINOR
        return Bump.PATCH

    def entries_for(self, commits: Iterable[CommitInfo]) -> List[ChangelogEntry]:
        entries: List[ChangelogEntry] = []
        for commit in commits:
            parsed = self.classify(commit.message)
            entries.append(
                ChangelogEntry(
                    category=parsed.type,
                    description=parsed.description,
                    commit_sha=commit.sha,
                    author=commit.author.name,
                    is_breaking=parsed.is_breaking,
                    scope=parsed.scope,
                    pull_request=extract_pull_request(commit.message),
                    confidence=1.0,
                )
            )
        return entries


def categorize(message: str) -> ChangeCategory:
    lowered = message.lower()
    for category in TYPE_PREFIXES:
        if lowered.startswith(category.value):
            return category
    return DEFAULT_CATEGORY


def extract_scope(message: str) -> Optional[str]:
    match = _SCOPE_PATTERN.match(message)
    return match.group(1) if match else None


def clean_description(message: str) -> str:
    stripped = _PREFIX_PATTERN.sub("", message, count=1)
    return stripped.split("\n", 1)[0].strip()


def is_breaking_change(message: str) -> bool:
    return BREAKING_MARKER in message or "!:" in message


def is_conventional(message: str) -> bool:
    return bool(_CONVENTIONAL_PATTERN.match(message.lower()))


def extract_pull_request(message: str) -> Optional[int]:
    first_line = message.split("\n", 1)[0]
    match = _PULL_REQUEST_PATTERN.search(first_line)
    return int(match.group(1)) if match else None


__all__ = [
    "BREAKING_MARKER",
    "ConventionalClassifier",
    "ConventionalCommit",
    "TYPE_PREFIXES",
    "categorize",
    "clean_description",
    "extract_pull_request",
    "extract_scope",
    "is_breaking_change",
    "is_conventional",
]
