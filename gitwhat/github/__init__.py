"""GitHub REST client and repository collector."""

from __future__ import annotations

from .client import GitHubClientConfig, GitHubRestClient
from .collector import (
    MAX_DETAIL_PAGES,
    MAX_REPOSITORY_PAGES,
    RepositoryCollector,
    RepositoryDataCollector,
    merge_repositories,
)
from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    SafetyLimitExceededError,
)
from .models import (
    Branch,
    ContributorStats,
    PullRequest,
    Release,
    RepositoryDetail,
    RepositoryIdentity,
    RepositorySummary,
)

__all__ = [
    "MAX_DETAIL_PAGES",
    "MAX_REPOSITORY_PAGES",
    "Branch",
    "ContributorStats",
    "GitHubAPIError",
    "GitHubClientConfig",
    "GitHubConfigError",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "PullRequest",
    "Release",
    "RepositoryCollector",
    "RepositoryDataCollector",
    "RepositoryDetail",
    "RepositoryIdentity",
    "RepositorySummary",
    "SafetyLimitExceededError",
    "merge_repositories",
]
