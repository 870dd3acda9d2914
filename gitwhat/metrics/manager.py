"""Incremental metric synchronisation for an organisation.

An organisation run reads the stored watermark, lists repositories changed
since it, refreshes the metric record of every repository whose stored record
is not newer than its last change, and finally moves the watermark to the
instant the run began. Forced evaluation ignores the watermark and deletes
stored records for repositories that were not listed.

Any collector or storage failure aborts the run before the watermark moves,
so the next run retries the same window.
"""

from __future__ import annotations

import typing as typ

from gitwhat.common.time import utcnow
from gitwhat.logging import get_logger, log_warning

from .errors import StorageError
from .models import CacheStats, RunOptions, SyncResult
from .observability import SyncEventLogger
from .store import org_options
from .transform import derive_metric

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from gitwhat.github.collector import RepositoryCollector
    from gitwhat.github.models import RepositoryIdentity

    from .models import MetricRecord
    from .store import MetricStore

logger = get_logger(__name__)


class SyncManager:
    """Coordinate the collector, transformer and metric store."""

    def __init__(
        self,
        collector: RepositoryCollector,
        store: MetricStore,
        *,
        event_logger: SyncEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Create a manager bound to a collector and a metric store."""
        self._collector = collector
        self._store = store
        self._event_logger = event_logger or SyncEventLogger()
        self._clock = clock

    async def sync_organization(
        self, org: str, options: RunOptions | None = None
    ) -> SyncResult:
        """Refresh metrics for the repositories of ``org``.

        Raises
        ------
        GitHubAPIError
            If listing or fetching repositories fails, including
            ``SafetyLimitExceededError`` for runaway pagination.
        StorageError
            If a metric record cannot be written, listed or deleted.

        """
        run_options = options or RunOptions()
        started_at = self._clock()
        try:
            result = await self._sync_organization(org, run_options, started_at)
        except Exception as exc:
            self._event_logger.log_run_failed(org, exc, self._clock() - started_at)
            raise

        self._event_logger.log_run_completed(result, self._clock() - started_at)
        return result

    async def sync_repository(self, org: str, name: str) -> MetricRecord:
        """Fetch, derive and store metrics for one repository.

        The watermark and reconciliation are left untouched.
        """
        started_at = self._clock()
        try:
            return await self._refresh(org, name)
        except Exception as exc:
            self._event_logger.log_run_failed(
                f"{org}/{name}", exc, self._clock() - started_at
            )
            raise

    async def _sync_organization(
        self, org: str, options: RunOptions, started_at: dt.datetime
    ) -> SyncResult:
        watermark = await self._load_watermark(org, options)
        self._event_logger.log_run_started(
            org, watermark=watermark, started_at=started_at
        )
        result = SyncResult(org=org, started_at=started_at)

        repositories = await self._collector.list_repositories(org, watermark)
        result.repositories_listed = len(repositories)

        active: set[str] = set()
        for repo in repositories:
            if options.force_all_repo_eval:
                active.add(repo.name)
            if not options.force_metric_update and await self._is_current(repo):
                result.repositories_skipped += 1
                continue
            await self._refresh(org, repo.name)
            result.repositories_updated += 1

        if options.force_all_repo_eval:
            result.repositories_deleted = await self._delete_inactive(org, active)

        await self._store.store_cache_stats(
            org, CacheStats(org=org, updated_at=started_at)
        )
        return result

    async def _load_watermark(
        self, org: str, options: RunOptions
    ) -> dt.datetime | None:
        if options.force_all_repo_eval:
            return None
        found, stats = await self._store.read_cache_stats(org)
        if not found or stats is None:
            return None
        return stats.updated_at

    async def _is_current(self, repo: RepositoryIdentity) -> bool:
        """Return True when the stored record is newer than the last change.

        Missing timestamps, missing records and unreadable records all count
        as stale.
        """
        if repo.last_changed is None:
            return False
        try:
            found, record = await self._store.read(repo.org, repo.name)
        except StorageError as exc:
            log_warning(
                logger,
                "Unable to read stored metrics for %s/%s, refreshing: %s",
                repo.org,
                repo.name,
                exc,
            )
            return False
        if not found or record is None:
            return False
        if repo.last_changed < record.as_of:
            self._event_logger.log_repository_skipped(
                repo.org, repo.name, repo.last_changed
            )
            return True
        return False

    async def _refresh(self, org: str, name: str) -> MetricRecord:
        detail = await self._collector.get_repository_detail(org, name)
        record = derive_metric(detail, now=self._clock())
        await self._store.store(record)
        self._event_logger.log_repository_updated(org, name, record.as_of)
        return record

    async def _delete_inactive(self, org: str, active: set[str]) -> int:
        deleted = 0
        for key in await self._store.list_keys(org_options(org)):
            if key.name in active:
                continue
            await self._store.delete(org, key.name)
            self._event_logger.log_repository_deleted(org, key.name)
            deleted += 1
        return deleted
