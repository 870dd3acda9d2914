"""MetricStore protocol for persisting repository metric records.

This module defines the port that the sync manager writes through. Adapters
implement it on top of a directory of JSON files
(:class:`~gitwhat.metrics.file_store.FileMetricStore`) or a SQL document table
(:class:`~gitwhat.metrics.sql_store.SqlMetricStore`); the manager never
branches on which one is active.

Cache statistics are bookkeeping rather than data: ``store_cache_stats`` must
not raise, and ``read_cache_stats`` reports any failure as "not found" so a
damaged watermark degrades to a full scan.
"""

from __future__ import annotations

import re
import typing as typ

from .models import ListMetricOptions

if typ.TYPE_CHECKING:
    from .models import CacheStats, MetricKey, MetricRecord


@typ.runtime_checkable
class MetricStore(typ.Protocol):
    """Persistence contract for metric records and cache statistics."""

    async def store(self, record: MetricRecord) -> None:
        """Insert or replace the record keyed by ``(org, repository_name)``."""
        ...

    async def read(self, org: str, name: str) -> tuple[bool, MetricRecord | None]:
        """Return ``(found, record)`` for the key."""
        ...

    async def delete(self, org: str, name: str) -> None:
        """Delete the record for the key; absent keys are not an error."""
        ...

    async def list_keys(self, options: ListMetricOptions) -> list[MetricKey]:
        """Return stored keys that satisfy ``options``."""
        ...

    async def store_cache_stats(self, org: str, stats: CacheStats) -> None:
        """Persist cache statistics, logging rather than raising on failure."""
        ...

    async def read_cache_stats(self, org: str) -> tuple[bool, CacheStats | None]:
        """Return ``(found, stats)``; failures read as not found."""
        ...


def org_options(org: str) -> ListMetricOptions:
    """Return list options matching exactly one organisation."""
    return ListMetricOptions(org_filter=re.compile(f"^{re.escape(org)}$"))
