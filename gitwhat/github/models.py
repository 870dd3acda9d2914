"""Typed domain models produced by the GitHub collector."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryIdentity:
    """Repository identifiers returned by organisation listings.

    ``last_changed`` is the most recent of the creation, push and update
    timestamps, or ``None`` when GitHub reported none of them.
    """

    id: int
    org: str
    name: str
    last_changed: dt.datetime | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RepositorySummary:
    """Base repository facets read from ``GET /repos/{org}/{name}``."""

    id: int
    name: str
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
    pushed_at: dt.datetime | None = None
    default_branch: str = ""
    allow_squash_merge: bool = False
    allow_rebase_merge: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class Branch:
    """Branch name and protection flag."""

    name: str
    protected: bool = False


@dataclasses.dataclass(frozen=True, slots=True)
class Release:
    """Published release."""

    id: int
    name: str = ""
    tag_name: str = ""


@dataclasses.dataclass(frozen=True, slots=True)
class PullRequest:
    """Pull request lifecycle timestamps."""

    id: int
    number: int
    state: str
    created_at: dt.datetime | None = None
    closed_at: dt.datetime | None = None
    merged_at: dt.datetime | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ContributorStats:
    """Commit total for a single contributor."""

    login: str
    total: int


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryDetail:
    """Everything collected for one repository in a single detail fetch."""

    identity: RepositoryIdentity
    repository: RepositorySummary
    topics: tuple[str, ...] = ()
    branches: tuple[Branch, ...] = ()
    releases: tuple[Release, ...] = ()
    pull_requests: tuple[PullRequest, ...] = ()
    languages: dict[str, int] = dataclasses.field(default_factory=dict)
    contributors: tuple[ContributorStats, ...] = ()
