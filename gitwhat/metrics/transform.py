"""Derive metric records from collected repository detail."""

from __future__ import annotations

import typing as typ

from gitwhat.common.time import minutes_between, utcnow

from .models import BuildMetric, CodeQualityMetric, MetricRecord, PullRequestMetric

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from gitwhat.github.models import Branch, PullRequest, RepositoryDetail

PORTFOLIO_PREFIX = "portfolio-"
PRODUCT_PREFIX = "product-"
TEAM_PREFIX = "team-"


def parse_topic(topics: cabc.Iterable[str], prefix: str) -> str:
    """Return the suffix of the first topic starting with ``prefix``.

    Examples
    --------
    >>> parse_topic(["python", "team-platform", "team-ops"], "team-")
    'platform'
    >>> parse_topic(["python"], "team-")
    ''

    """
    for topic in topics:
        if topic.startswith(prefix):
            return topic.removeprefix(prefix)
    return ""


def default_branch_protected(
    branches: cabc.Iterable[Branch], default_branch: str
) -> bool:
    """Return whether the branch named ``default_branch`` is protected."""
    for branch in branches:
        if branch.name == default_branch:
            return branch.protected
    return False


def pull_request_metric(
    pull_request: PullRequest, *, now: dt.datetime
) -> PullRequestMetric:
    """Summarise a pull request, measuring how long it was (or is) open."""
    finished_at = pull_request.merged_at or pull_request.closed_at or now
    minutes_open = (
        minutes_between(pull_request.created_at, finished_at)
        if pull_request.created_at is not None
        else 0.0
    )
    return PullRequestMetric(
        number=pull_request.number,
        status=pull_request.state,
        created_at=pull_request.created_at,
        closed_at=pull_request.closed_at,
        merged_at=pull_request.merged_at,
        minutes_open=minutes_open,
    )


def derive_metric(
    detail: RepositoryDetail, *, now: dt.datetime | None = None
) -> MetricRecord:
    """Build the metric record for a repository detail bundle.

    Build and code quality figures are fixed placeholders until dedicated
    collectors exist.
    """
    as_of = now or utcnow()
    repository = detail.repository
    default_branch = repository.default_branch
    languages = dict(detail.languages)
    return MetricRecord(
        id=detail.identity.id,
        org=detail.identity.org,
        repository_name=detail.identity.name,
        as_of=as_of,
        portfolio=parse_topic(detail.topics, PORTFOLIO_PREFIX),
        product=parse_topic(detail.topics, PRODUCT_PREFIX),
        team=parse_topic(detail.topics, TEAM_PREFIX),
        created=repository.created_at,
        updated=repository.updated_at,
        pushed=repository.pushed_at,
        default_branch=default_branch,
        squashable=repository.allow_squash_merge,
        rebaseable=repository.allow_rebase_merge,
        protected=default_branch_protected(detail.branches, default_branch),
        branch_count=len(detail.branches),
        release_count=len(detail.releases),
        commit_count=sum(contributor.total for contributor in detail.contributors),
        code_byte_count=sum(languages.values()),
        languages=languages,
        pull_requests=[
            pull_request_metric(pull_request, now=as_of)
            for pull_request in detail.pull_requests
        ],
        build=BuildMetric(),
        code_quality=CodeQualityMetric(),
    )
