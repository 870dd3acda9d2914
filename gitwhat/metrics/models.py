"""Metric record and run bookkeeping structures.

Persisted structures are msgspec structs with camelCase wire names so the
JSON written by either storage backend reads the same::

    {"id": 1, "org": "acme", "repositoryName": "widget", ..., "asOf": "..."}

"""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    import re


class PullRequestMetric(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Lifecycle summary of one pull request.

    Attributes
    ----------
    number : int
        Pull request number within its repository.
    status : str
        GitHub state (``open`` or ``closed``).
    minutes_open : float
        Minutes from creation until merge, close, or the time of derivation.

    """

    number: int
    status: str = ""
    created_at: dt.datetime | None = None
    closed_at: dt.datetime | None = None
    merged_at: dt.datetime | None = None
    minutes_open: float = 0.0


class BuildMetric(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Build activity placeholders."""

    builds_today_count: int = 10
    builds_week_count: int = 25
    builds_month_count: int = 200
    avg_build_minutes_last_month: float = 2.5


class CodeQualityMetric(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Static analysis and test placeholders."""

    blocker_count: int = 0
    critical_count: int = 0
    major_count: int = 0
    issue_count: int = 4
    test_count: int = 25
    test_error_count: int = 0
    test_fail_count: int = 0
    test_coverage_pct: float = 83.4


class MetricRecord(msgspec.Struct, kw_only=True, frozen=True, rename="camel"):
    """Metrics derived for one repository, keyed by ``(org, repository_name)``.

    Attributes
    ----------
    portfolio, product, team : str
        Suffixes of the first ``portfolio-``, ``product-`` and ``team-``
        topics, or empty strings.
    protected : bool
        Whether the default branch is protected.
    as_of : datetime
        Instant the record was derived; the staleness baseline.

    """

    id: int
    org: str
    repository_name: str
    as_of: dt.datetime
    portfolio: str = ""
    product: str = ""
    team: str = ""
    created: dt.datetime | None = None
    updated: dt.datetime | None = None
    pushed: dt.datetime | None = None
    default_branch: str = ""
    squashable: bool = False
    rebaseable: bool = False
    protected: bool = False
    branch_count: int = 0
    release_count: int = 0
    commit_count: int = 0
    code_byte_count: int = 0
    languages: dict[str, int] = msgspec.field(default_factory=dict)
    pull_requests: list[PullRequestMetric] = msgspec.field(default_factory=list)
    build: BuildMetric = msgspec.field(default_factory=BuildMetric)
    code_quality: CodeQualityMetric = msgspec.field(default_factory=CodeQualityMetric)

    @property
    def key(self) -> MetricKey:
        """Return the storage key of this record."""
        return MetricKey(org=self.org, name=self.repository_name)


class CacheStats(msgspec.Struct, kw_only=True, rename="camel"):
    """Per-organisation bookkeeping; ``updated_at`` is the next watermark."""

    org: str
    updated_at: dt.datetime | None = None


@dataclasses.dataclass(frozen=True, slots=True, order=True)
class MetricKey:
    """Storage key for a metric record."""

    org: str
    name: str


@dataclasses.dataclass(frozen=True, slots=True)
class ListMetricOptions:
    """Regular-expression filters applied by ``MetricStore.list_keys``.

    Filters use search semantics; anchor them to match whole values.
    """

    org_filter: re.Pattern[str] | None = None
    name_filter: re.Pattern[str] | None = None

    def matches(self, key: MetricKey) -> bool:
        """Return True when ``key`` satisfies every configured filter."""
        if self.org_filter is not None and not self.org_filter.search(key.org):
            return False
        return self.name_filter is None or bool(self.name_filter.search(key.name))


@dataclasses.dataclass(frozen=True, slots=True)
class RunOptions:
    """Flags controlling an organisation sync.

    ``force_all_repo_eval`` ignores the stored watermark and reconciles the
    cache afterwards; ``force_metric_update`` disables the staleness skip.
    """

    force_metric_update: bool = False
    force_all_repo_eval: bool = False


@dataclasses.dataclass(slots=True)
class SyncResult:
    """Summary of an organisation sync run."""

    org: str
    started_at: dt.datetime
    repositories_listed: int = 0
    repositories_updated: int = 0
    repositories_skipped: int = 0
    repositories_deleted: int = 0
