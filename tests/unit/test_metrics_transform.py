"""Unit tests for deriving metric records from repository detail."""

from __future__ import annotations

import datetime as dt

import pytest

from gitwhat.github.models import (
    Branch,
    ContributorStats,
    PullRequest,
    Release,
    RepositoryDetail,
    RepositoryIdentity,
    RepositorySummary,
)
from gitwhat.metrics.models import BuildMetric, CodeQualityMetric
from gitwhat.metrics.transform import (
    default_branch_protected,
    derive_metric,
    parse_topic,
    pull_request_metric,
)

_NOW = dt.datetime(2024, 3, 1, 12, tzinfo=dt.UTC)
_CREATED = dt.datetime(2023, 5, 1, tzinfo=dt.UTC)


def _detail(**changes: object) -> RepositoryDetail:
    fields: dict[str, object] = {
        "identity": RepositoryIdentity(
            id=42, org="acme", name="widget", last_changed=_CREATED
        ),
        "repository": RepositorySummary(
            id=42,
            name="widget",
            created_at=_CREATED,
            updated_at=_CREATED,
            pushed_at=_CREATED,
            default_branch="main",
            allow_squash_merge=True,
        ),
    }
    fields.update(changes)
    return RepositoryDetail(**fields)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("branches", "expected"),
    [
        ((Branch("main", protected=True),), True),
        ((Branch("dev", protected=True), Branch("main", protected=False)), False),
        ((Branch("dev", protected=True),), False),
        ((), False),
    ],
)
def test_default_branch_protection(
    branches: tuple[Branch, ...], expected: bool  # noqa: FBT001
) -> None:
    assert default_branch_protected(branches, "main") is expected


def test_first_matching_branch_decides_protection() -> None:
    branches = (Branch("main", protected=True), Branch("main", protected=False))

    assert default_branch_protected(branches, "main") is True


def test_parse_topic_takes_first_match() -> None:
    topics = ["python", "product-billing", "product-invoices"]

    assert parse_topic(topics, "product-") == "billing"
    assert parse_topic(topics, "portfolio-") == ""


class TestPullRequestMetric:
    """Minutes-open derivation for pull requests."""

    def test_merged_pull_request_uses_merge_time(self) -> None:
        """Merge time wins over close time."""
        created = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
        metric = pull_request_metric(
            PullRequest(
                id=900,
                number=3,
                state="closed",
                created_at=created,
                closed_at=created + dt.timedelta(hours=3),
                merged_at=created + dt.timedelta(minutes=90),
            ),
            now=_NOW,
        )

        assert metric.minutes_open == pytest.approx(90.0)
        assert metric.number == 3  # noqa: PLR2004
        assert metric.status == "closed"

    def test_closed_pull_request_uses_close_time(self) -> None:
        """Unmerged closed pull requests stop counting when closed."""
        created = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
        metric = pull_request_metric(
            PullRequest(
                id=1,
                number=1,
                state="closed",
                created_at=created,
                closed_at=created + dt.timedelta(minutes=15),
            ),
            now=_NOW,
        )

        assert metric.minutes_open == pytest.approx(15.0)

    def test_open_pull_request_counts_until_now(self) -> None:
        """Open pull requests are measured up to the derivation time."""
        metric = pull_request_metric(
            PullRequest(
                id=1,
                number=1,
                state="open",
                created_at=_NOW - dt.timedelta(days=1),
            ),
            now=_NOW,
        )

        assert metric.minutes_open == pytest.approx(24 * 60.0)

    def test_missing_created_at_gives_zero(self) -> None:
        """Without a creation time nothing can be measured."""
        metric = pull_request_metric(
            PullRequest(id=1, number=1, state="open"), now=_NOW
        )

        assert metric.minutes_open == 0.0


class TestDeriveMetric:
    """Full record derivation."""

    def test_identity_and_base_facets_are_copied(self) -> None:
        """Identity, timestamps and merge settings flow into the record."""
        record = derive_metric(_detail(), now=_NOW)

        assert record.id == 42  # noqa: PLR2004
        assert record.org == "acme"
        assert record.repository_name == "widget"
        assert record.created == _CREATED
        assert record.default_branch == "main"
        assert record.squashable is True
        assert record.rebaseable is False
        assert record.as_of == _NOW

    def test_topics_populate_portfolio_product_and_team(self) -> None:
        """Prefixed topics are split into their own fields."""
        record = derive_metric(
            _detail(
                topics=("portfolio-retail", "product-checkout", "team-payments", "go")
            ),
            now=_NOW,
        )

        assert (record.portfolio, record.product, record.team) == (
            "retail",
            "checkout",
            "payments",
        )

    def test_counts_and_aggregates(self) -> None:
        """Branch, release, language and commit aggregates are derived."""
        record = derive_metric(
            _detail(
                branches=(Branch("main", protected=True), Branch("dev")),
                releases=(Release(id=1), Release(id=2), Release(id=3)),
                languages={"Python": 1000, "HTML": 24},
                contributors=(
                    ContributorStats(login="ada", total=10),
                    ContributorStats(login="bob", total=5),
                ),
            ),
            now=_NOW,
        )

        assert record.branch_count == 2  # noqa: PLR2004
        assert record.release_count == 3  # noqa: PLR2004
        assert record.protected is True
        assert record.code_byte_count == 1024  # noqa: PLR2004
        assert record.languages == {"Python": 1000, "HTML": 24}
        assert record.commit_count == 15  # noqa: PLR2004

    def test_empty_detail_gives_zero_counts(self) -> None:
        """Empty sub-resources produce zero counts and no protection."""
        record = derive_metric(_detail(), now=_NOW)

        assert record.branch_count == 0
        assert record.release_count == 0
        assert record.protected is False
        assert record.pull_requests == []
        assert (record.portfolio, record.product, record.team) == ("", "", "")

    def test_placeholder_build_and_quality_metrics(self) -> None:
        """Build and code quality figures are fixed placeholders."""
        record = derive_metric(_detail(), now=_NOW)

        assert record.build == BuildMetric(
            builds_today_count=10,
            builds_week_count=25,
            builds_month_count=200,
            avg_build_minutes_last_month=2.5,
        )
        assert record.code_quality.test_coverage_pct == pytest.approx(83.4)
        assert record.code_quality == CodeQualityMetric()

    def test_as_of_defaults_to_current_time(self) -> None:
        """Without ``now`` the record is stamped with the current UTC time."""
        before = dt.datetime.now(dt.UTC)
        record = derive_metric(_detail())

        assert record.as_of >= before
        assert record.as_of.tzinfo is not None
