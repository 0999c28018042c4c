"""Branch-name to git-ref resolution.

Each resolver is tried in order and the first hit wins:

1. the local branch,
2. the ``origin/<name>`` remote-tracking branch,
3. ``git fetch origin <name>:<name>`` as a last resort.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..errors import BranchNotFoundError, GitCommandError
from ..logging import get_logger
from .repository import GitRepository

logger = get_logger("git.refs")


class RefResolver(Protocol):
    name: str

    def resolve(self, repo: GitRepository, branch: str) -> Optional[str]:
        """Return a usable ref for ``branch`` or ``None`` when this step misses."""


class LocalRefResolver:
    name = "local"

    def resolve(self, repo: GitRepository, branch: str) -> Optional[str]:
        return branch if repo.succeeds("rev-parse", "--verify", branch) else None


class RemoteRefResolver:
    name = "remote"

    def __init__(self, remote: str = "origin") -> None:
        self.remote = remote

    def resolve(self, repo: GitRepository, branch: str) -> Optional[str]:
        ref = f"{self.remote}/{branch}"
        return ref if repo.succeeds("rev-parse", "--verify", ref) else None


class FetchRefResolver:
    """Fetches the branch into a local branch of the same name (side-effecting)."""

    name = "fetch"

    def __init__(self, remote: str = "origin") -> None:
        self.remote = remote

    def resolve(self, repo: GitRepository, branch: str) -> Optional[str]:
        try:
            repo.git("fetch", self.remote, f"{branch}:{branch}")
        except GitCommandError as exc:
            logger.debug("Fetching '%s' from %s failed: %s", branch, self.remote, exc)
            return None
        logger.debug("Fetched branch '%s' from %s", branch, self.remote)
        return branch


DEFAULT_RESOLVERS: tuple[RefResolver, ...] = (
    LocalRefResolver(),
    RemoteRefResolver(),
    FetchRefResolver(),
)


def resolve_branch(
    repo: GitRepository,
    branch: str,
    resolvers: Sequence[RefResolver] = DEFAULT_RESOLVERS,
) -> str:
    for resolver in resolvers:
        ref = resolver.resolve(repo, branch)
        if ref is not None:
            logger.debug("Resolved branch '%s' to '%s' via %s", branch, ref, resolver.name)
            return ref
    raise BranchNotFoundError(branch)


__all__ = [
    "DEFAULT_RESOLVERS",
    "FetchRefResolver",
    "LocalRefResolver",
    "RefResolver",
    "RemoteRefResolver",
    "resolve_branch",
]
