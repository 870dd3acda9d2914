"""In-memory collector and metric store for sync manager tests."""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

from gitwhat.github.models import (
    Branch,
    RepositoryDetail,
    RepositoryIdentity,
    RepositorySummary,
)
from gitwhat.metrics.errors import StorageError
from gitwhat.metrics.models import (
    CacheStats,
    MetricKey,
    MetricRecord,
    PullRequestMetric,
)

if typ.TYPE_CHECKING:
    from gitwhat.metrics.models import ListMetricOptions

T0 = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)


def at(hours: float) -> dt.datetime:
    """Return ``T0`` shifted by ``hours``."""
    return T0 + dt.timedelta(hours=hours)


def identity(
    repo_id: int, name: str, *, org: str = "acme", changed: dt.datetime | None = T0
) -> RepositoryIdentity:
    """Return a listed repository identity."""
    return RepositoryIdentity(id=repo_id, org=org, name=name, last_changed=changed)


def make_record(
    name: str, *, org: str = "acme", as_of: dt.datetime = T0, repo_id: int = 1
) -> MetricRecord:
    """Return a stored metric record with a pull request and languages."""
    return MetricRecord(
        id=repo_id,
        org=org,
        repository_name=name,
        as_of=as_of,
        team="platform",
        created=T0,
        default_branch="main",
        protected=True,
        branch_count=2,
        languages={"Python": 100},
        code_byte_count=100,
        pull_requests=[
            PullRequestMetric(
                number=900, status="open", created_at=T0, minutes_open=30.0
            )
        ],
    )


def detail_for(
    repo: RepositoryIdentity,
    *,
    default_branch: str = "main",
    branches: tuple[Branch, ...] = (),
) -> RepositoryDetail:
    """Return a minimal detail bundle for ``repo``."""
    return RepositoryDetail(
        identity=repo,
        repository=RepositorySummary(
            id=repo.id,
            name=repo.name,
            created_at=repo.last_changed,
            updated_at=repo.last_changed,
            pushed_at=repo.last_changed,
            default_branch=default_branch,
        ),
        branches=branches,
    )


class FakeCollector:
    """Collector serving fixed listings and recording calls."""

    def __init__(
        self,
        repositories: list[RepositoryIdentity],
        *,
        details: dict[str, RepositoryDetail] | None = None,
    ) -> None:
        self.repositories = repositories
        self.details = details or {}
        self.list_error: Exception | None = None
        self.detail_errors: dict[str, Exception] = {}
        self.list_calls: list[tuple[str, dt.datetime | None]] = []
        self.detail_calls: list[str] = []

    async def list_repositories(
        self, org: str, changed_after: dt.datetime | None = None
    ) -> list[RepositoryIdentity]:
        self.list_calls.append((org, changed_after))
        if self.list_error is not None:
            raise self.list_error
        return list(self.repositories)

    async def get_repository_detail(self, org: str, name: str) -> RepositoryDetail:
        self.detail_calls.append(name)
        if name in self.detail_errors:
            raise self.detail_errors[name]
        if name in self.details:
            return self.details[name]
        listed = next(
            (repo for repo in self.repositories if repo.name == name),
            identity(len(self.detail_calls), name, org=org),
        )
        return detail_for(listed)


@dataclasses.dataclass
class InMemoryMetricStore:
    """MetricStore keeping everything in dictionaries."""

    records: dict[MetricKey, MetricRecord] = dataclasses.field(default_factory=dict)
    cache_stats: dict[str, CacheStats] = dataclasses.field(default_factory=dict)
    deleted: list[MetricKey] = dataclasses.field(default_factory=list)
    unreadable: set[str] = dataclasses.field(default_factory=set)
    fail_delete: bool = False
    fail_store: bool = False

    async def store(self, record: MetricRecord) -> None:
        if self.fail_store:
            raise StorageError("store", record.repository_name, "disk full")
        self.records[record.key] = record

    async def read(self, org: str, name: str) -> tuple[bool, MetricRecord | None]:
        if name in self.unreadable:
            raise StorageError("read", name, "corrupt document")
        record = self.records.get(MetricKey(org=org, name=name))
        return (record is not None, record)

    async def delete(self, org: str, name: str) -> None:
        if self.fail_delete:
            raise StorageError("delete", name, "permission denied")
        key = MetricKey(org=org, name=name)
        self.records.pop(key, None)
        self.deleted.append(key)

    async def list_keys(self, options: ListMetricOptions) -> list[MetricKey]:
        return sorted(key for key in self.records if options.matches(key))

    async def store_cache_stats(self, org: str, stats: CacheStats) -> None:
        self.cache_stats[org] = stats

    async def read_cache_stats(self, org: str) -> tuple[bool, CacheStats | None]:
        stats = self.cache_stats.get(org)
        return (stats is not None, stats)
