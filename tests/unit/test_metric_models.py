"""Unit tests for metric record structures and list filters."""

from __future__ import annotations

import re

import msgspec
import pytest

from gitwhat.metrics.models import (
    CacheStats,
    ListMetricOptions,
    MetricKey,
    MetricRecord,
)
from tests.helpers.fakes import T0, make_record


def test_record_serialises_with_camel_case_names() -> None:
    document = msgspec.to_builtins(make_record("widget"))

    assert {"repositoryName", "asOf", "branchCount", "codeQuality"} <= document.keys()
    assert document["codeQuality"]["testCoveragePct"] == pytest.approx(83.4)
    assert document["pullRequests"][0]["minutesOpen"] == pytest.approx(30.0)


def test_record_decodes_with_defaults() -> None:
    record = msgspec.json.decode(
        b'{"id": 3, "org": "acme", "repositoryName": "api",'
        b' "asOf": "2024-01-01T00:00:00Z"}',
        type=MetricRecord,
    )

    assert record.key == MetricKey("acme", "api")
    assert record.as_of == T0
    assert record.build.builds_month_count == 200  # noqa: PLR2004
    assert record.pull_requests == []


def test_cache_stats_wire_name() -> None:
    assert msgspec.json.decode(
        msgspec.json.encode(CacheStats(org="acme", updated_at=T0))
    ) == {"org": "acme", "updatedAt": "2024-01-01T00:00:00Z"}


class TestListMetricOptions:
    """Filter semantics for ``list_keys``."""

    @pytest.fixture
    def keys(self) -> list[MetricKey]:
        """Return keys across two organisations."""
        return [
            MetricKey("acme", "api"),
            MetricKey("acme", "web"),
            MetricKey("acme-labs", "api"),
            MetricKey("other", "webhooks"),
        ]

    def test_no_filters_match_everything(self, keys: list[MetricKey]) -> None:
        """Empty options match every key."""
        assert all(ListMetricOptions().matches(key) for key in keys)

    def test_both_filters_must_match(self, keys: list[MetricKey]) -> None:
        """With both filters a key must satisfy each one."""
        org_only = ListMetricOptions(org_filter=re.compile("^acme"))
        name_only = ListMetricOptions(name_filter=re.compile("api"))
        both = ListMetricOptions(
            org_filter=re.compile("^acme"), name_filter=re.compile("api")
        )

        matched_both = {key for key in keys if both.matches(key)}
        matched_org = {key for key in keys if org_only.matches(key)}
        matched_name = {key for key in keys if name_only.matches(key)}

        assert matched_both == {MetricKey("acme", "api"), MetricKey("acme-labs", "api")}
        assert matched_both == matched_org & matched_name
        assert matched_org > matched_both
        assert matched_name >= matched_both

    def test_filters_use_search_semantics(self, keys: list[MetricKey]) -> None:
        """Unanchored patterns match anywhere in the value."""
        options = ListMetricOptions(name_filter=re.compile("hook"))

        assert [key for key in keys if options.matches(key)] == [
            MetricKey("other", "webhooks")
        ]
