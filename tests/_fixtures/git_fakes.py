"""In-memory stand-ins for git and the completion provider."""

from __future__ import annotations

import json
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from bumpwise.llm.runner import Completion
from bumpwise.models import CommitInfo, FileChange, FileStatus, GitDiff, Identity

SEPARATOR = "\x1f"


class FakeGit:
    """Answers ``git`` invocations from a table keyed by the argument tuple.

    Anything not in the table exits with status 128, like git does for an
    unknown ref.
    """

    def __init__(self, responses: Mapping[tuple[str, ...], str] | None = None) -> None:
        self.responses: Dict[tuple[str, ...], str] = dict(responses or {})
        self.calls: List[tuple[str, ...]] = []

    def __call__(self, args: Sequence[str], *, cwd: Any, capture_output: bool = False) -> str:
        key = tuple(args[1:])
        self.calls.append(key)
        if key not in self.responses:
            raise subprocess.CalledProcessError(128, list(args), output="", stderr=f"fatal: {' '.join(key)}")
        return self.responses[key]


REPOSITORY_CHECKS: Dict[tuple[str, ...], str] = {
    ("rev-parse", "--git-dir"): ".git\n",
    ("remote", "get-url", "origin"): "https://github.com/acme/widgets.git\n",
    ("rev-parse", "--abbrev-ref", "HEAD"): "feature\n",
}


def checkout_git(responses: Mapping[tuple[str, ...], str] | None = None) -> FakeGit:
    """A ``FakeGit`` that also passes the repository checks run before collection."""
    return FakeGit({**REPOSITORY_CHECKS, **(responses or {})})


def log_line(
    sha: str,
    subject: str,
    *,
    author: str = "Ada",
    email: str = "ada@example.com",
    timestamp: int = 1_700_000_000,
) -> str:
    return SEPARATOR.join(
        [sha, subject, author, email, str(timestamp), author, email, str(timestamp)]
    )


def make_commit(
    message: str,
    *,
    sha: str = "a" * 40,
    author: str = "Ada",
    email: str = "ada@example.com",
    when: datetime | None = None,
    files: Iterable[FileChange] = (),
) -> CommitInfo:
    stamp = when or datetime(2024, 1, 1, tzinfo=timezone.utc)
    identity = Identity(name=author, email=email, date=stamp)
    return CommitInfo(sha=sha, message=message, author=identity, committer=identity, files=tuple(files))


def make_diff(*messages: str) -> GitDiff:
    commits = [
        make_commit(
            message,
            sha=f"{index:040x}",
            files=[FileChange(f"src/module_{index}.py", FileStatus.MODIFIED, 3, 1)],
        )
        for index, message in enumerate(messages, start=1)
    ]
    changes = [change for commit in commits for change in commit.files]
    return GitDiff.build(commits, changes)


class FakeProvider:
    """Completion provider returning queued replies; exceptions in the queue are raised."""

    def __init__(self, *replies: Any, model: str = "fake-model", temperature: float = 0.1) -> None:
        self.replies = list(replies)
        self.model = model
        self.temperature = temperature
        self.prompts: List[tuple[str, str | None]] = []

    async def complete(self, prompt: str, *, system: str | None = None) -> Completion:
        self.prompts.append((prompt, system))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, Completion):
            return reply
        text = reply if isinstance(reply, str) else json.dumps(reply)
        return Completion(text=text, tokens_used=1000)


def ai_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "versionBump": "minor",
        "confidence": 0.9,
        "reasoning": ["Adds a new feature"],
        "changes": [
            {
                "category": "feat",
                "description": "Add login endpoint",
                "commitSha": "abc1234",
                "author": "Ada",
                "isBreaking": False,
                "scope": "auth",
                "confidence": 0.95,
            }
        ],
        "breakingChanges": [],
    }
    payload.update(overrides)
    return payload


async def no_sleep(_: float) -> None:
    return None
