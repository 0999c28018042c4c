"""Git host access: repository checks, ref resolution and diff collection."""

from .diff import DiffCollector, infer_status
from .refs import (
    DEFAULT_RESOLVERS,
    FetchRefResolver,
    LocalRefResolver,
    RefResolver,
    RemoteRefResolver,
    resolve_branch,
)
from .repository import GitRepository, RepositoryInfo, parse_repository_url

__all__ = [
    "DEFAULT_RESOLVERS",
    "DiffCollector",
    "FetchRefResolver",
    "GitRepository",
    "LocalRefResolver",
    "RefResolver",
    "RemoteRefResolver",
    "RepositoryInfo",
    "infer_status",
    "parse_repository_url",
    "resolve_branch",
]
