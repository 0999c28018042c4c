"""Tests for branch diff collection."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from bumpwise.errors import BranchNotFoundError, GitCommandError, RemoteUrlError, RepositoryNotFoundError
from bumpwise.git import DiffCollector, infer_status
from bumpwise.git.diff import _LOG_FORMAT
from bumpwise.models import FileStatus
from tests._fixtures.git_fakes import FakeGit, checkout_git, log_line

SHA_NEW = "b" * 40
SHA_OLD = "a" * 40


def _git_with_history() -> FakeGit:
    return checkout_git(
        {
            ("rev-parse", "--verify", "main"): "main\n",
            ("rev-parse", "--verify", "feature"): "feature\n",
            ("log", f"--pretty=format:{_LOG_FORMAT}", "main..feature"): "\n".join(
                [
                    log_line(SHA_NEW, "feat(api): add | pipe endpoint", author="Bo", email="bo@example.com", timestamp=1_700_000_500),
                    log_line(SHA_OLD, "fix: off by one", timestamp=1_700_000_000),
                ]
            ),
            ("show", "--numstat", "--format=", SHA_NEW): "10\t2\tsrc/api.py\n-\t-\tassets/logo.png\n",
            ("show", "--numstat", "--format=", SHA_OLD): "1\t1\tsrc/util.py\n",
            ("rev-list", "--parents", "-n", "1", SHA_NEW): f"{SHA_NEW} {SHA_OLD}\n",
            ("rev-list", "--parents", "-n", "1", SHA_OLD): f"{SHA_OLD} {'c' * 40}\n",
            ("diff", "--numstat", "main..feature"): (
                "10\t2\tsrc/api.py\n1\t1\tsrc/util.py\n5\t0\tdocs/new.md\n0\t7\told.txt\n"
            ),
        }
    )


def test_collect_builds_commits_and_totals(tmp_path: Path) -> None:
    runner = _git_with_history()
    diff = DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert [commit.sha for commit in diff.commits] == [SHA_NEW, SHA_OLD]
    newest = diff.commits[0]
    assert newest.message == "feat(api): add | pipe endpoint"
    assert newest.author.name == "Bo"
    assert newest.parents == (SHA_OLD,)
    assert [(f.path, f.additions, f.deletions) for f in newest.files] == [
        ("src/api.py", 10, 2),
        ("assets/logo.png", 0, 0),
    ]
    assert all(f.status is FileStatus.MODIFIED for f in newest.files)

    assert diff.total_additions == 16
    assert diff.total_deletions == 10
    assert diff.contributors == ("bo@example.com", "ada@example.com")
    assert diff.date_range == (
        datetime.fromtimestamp(1_700_000_000, tz=timezone.utc),
        datetime.fromtimestamp(1_700_000_500, tz=timezone.utc),
    )


def test_collect_infers_file_status(tmp_path: Path) -> None:
    diff = DiffCollector(tmp_path, runner=_git_with_history()).collect("main", "feature")
    statuses = {change.path: change.status for change in diff.file_changes}

    assert statuses == {
        "src/api.py": FileStatus.MODIFIED,
        "src/util.py": FileStatus.MODIFIED,
        "docs/new.md": FileStatus.ADDED,
        "old.txt": FileStatus.DELETED,
    }


def test_collect_tolerates_failed_per_commit_stats(tmp_path: Path) -> None:
    runner = _git_with_history()
    del runner.responses[("show", "--numstat", "--format=", SHA_OLD)]

    diff = DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert diff.commits[1].files == ()
    assert len(diff.file_changes) == 4


def test_collect_with_no_commits_uses_single_instant(tmp_path: Path) -> None:
    runner = checkout_git(
        {
            ("rev-parse", "--verify", "main"): "",
            ("rev-parse", "--verify", "feature"): "",
            ("log", f"--pretty=format:{_LOG_FORMAT}", "main..feature"): "",
            ("diff", "--numstat", "main..feature"): "",
        }
    )
    diff = DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert diff.commits == ()
    assert diff.contributors == ()
    start, end = diff.date_range
    assert start == end
    assert start.tzinfo is not None


def test_collect_uses_remote_ref_when_local_branch_is_missing(tmp_path: Path) -> None:
    runner = checkout_git(
        {
            ("rev-parse", "--verify", "main"): "",
            ("rev-parse", "--verify", "origin/feature"): "",
            ("log", f"--pretty=format:{_LOG_FORMAT}", "main..origin/feature"): "",
            ("diff", "--numstat", "main..origin/feature"): "",
        }
    )
    DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert ("rev-parse", "--verify", "origin/feature") in runner.calls
    assert ("fetch", "origin", "feature:feature") not in runner.calls


def test_collect_reports_missing_branch(tmp_path: Path) -> None:
    runner = checkout_git({("rev-parse", "--verify", "main"): ""})

    with pytest.raises(BranchNotFoundError) as excinfo:
        DiffCollector(tmp_path, runner=runner).collect("main", "ghost")

    assert excinfo.value.branch == "ghost"
    assert "ghost" in str(excinfo.value)


def test_collect_propagates_log_failure(tmp_path: Path) -> None:
    runner = checkout_git(
        {
            ("rev-parse", "--verify", "main"): "",
            ("rev-parse", "--verify", "feature"): "",
        }
    )
    with pytest.raises(GitCommandError) as excinfo:
        DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert excinfo.value.exit_code == 128
    assert excinfo.value.command.startswith("git log")


@pytest.mark.parametrize(
    ("additions", "deletions", "expected"),
    [(4, 0, FileStatus.ADDED), (0, 4, FileStatus.DELETED), (2, 2, FileStatus.MODIFIED), (0, 0, FileStatus.MODIFIED)],
)
def test_infer_status(additions: int, deletions: int, expected: FileStatus) -> None:
    assert infer_status(additions, deletions) is expected


def test_collect_checks_repository_before_resolving_branches(tmp_path: Path) -> None:
    runner = FakeGit({("rev-parse", "--verify", "main"): "", ("rev-parse", "--verify", "feature"): ""})

    with pytest.raises(RepositoryNotFoundError):
        DiffCollector(tmp_path, runner=runner).collect("main", "feature")

    assert runner.calls == [("rev-parse", "--git-dir")]


def test_collect_rejects_non_github_remote(tmp_path: Path) -> None:
    runner = checkout_git({("remote", "get-url", "origin"): "https://gitlab.com/acme/widgets.git\n"})

    with pytest.raises(RemoteUrlError):
        DiffCollector(tmp_path, runner=runner).collect("main", "feature")
