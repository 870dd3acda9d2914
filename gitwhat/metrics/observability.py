"""Structured log events for metric sync runs.

Events are single ``[event] key=value`` lines emitted through femtologging at
INFO for progress and ERROR for failures, so a log aggregator can pick out
run outcomes without parsing free text.
"""

from __future__ import annotations

import enum
import typing as typ

from gitwhat.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    SafetyLimitExceededError,
)
from gitwhat.logging import get_logger, log_error, log_info

from .errors import StorageError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .models import SyncResult

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class SyncEventType(enum.StrEnum):
    """Structured log event types for sync runs."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_FAILED = "sync.run.failed"
    REPOSITORY_UPDATED = "sync.repository.updated"
    REPOSITORY_SKIPPED = "sync.repository.skipped"
    REPOSITORY_DELETED = "sync.repository.deleted"


class ErrorCategory(enum.StrEnum):
    """Categories for classifying fatal sync errors."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    PAGINATION_RUNAWAY = "pagination_runaway"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    UNKNOWN = "unknown"


# Subclasses precede GitHubAPIError, which is handled separately.
_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (SafetyLimitExceededError, ErrorCategory.PAGINATION_RUNAWAY),
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (GitHubConfigError, ErrorCategory.CONFIGURATION),
    (StorageError, ErrorCategory.STORAGE),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Return the category used when reporting a failed run."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    if isinstance(exc, GitHubAPIError):
        if (
            exc.status_code is not None
            and exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    return ErrorCategory.UNKNOWN


class SyncEventLogger:
    """Emit structured sync events via femtologging."""

    def log_run_started(
        self, org: str, *, watermark: dt.datetime | None, started_at: dt.datetime
    ) -> None:
        """Log the start of an organisation sync."""
        log_info(
            logger,
            "[%s] org=%s watermark=%s started_at=%s",
            SyncEventType.RUN_STARTED,
            org,
            watermark.isoformat() if watermark is not None else "none",
            started_at.isoformat(),
        )

    def log_run_completed(self, result: SyncResult, duration: dt.timedelta) -> None:
        """Log a successful organisation sync with its counters."""
        log_info(
            logger,
            "[%s] org=%s duration_seconds=%.3f repositories_listed=%d "
            "repositories_updated=%d repositories_skipped=%d "
            "repositories_deleted=%d",
            SyncEventType.RUN_COMPLETED,
            result.org,
            duration.total_seconds(),
            result.repositories_listed,
            result.repositories_updated,
            result.repositories_skipped,
            result.repositories_deleted,
        )

    def log_run_failed(
        self, target: str, error: BaseException, duration: dt.timedelta
    ) -> None:
        """Log a failed sync with its error category."""
        log_error(
            logger,
            "[%s] target=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            SyncEventType.RUN_FAILED,
            target,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_repository_updated(self, org: str, name: str, as_of: dt.datetime) -> None:
        """Log a stored metric record."""
        log_info(
            logger,
            "[%s] repo_slug=%s/%s as_of=%s",
            SyncEventType.REPOSITORY_UPDATED,
            org,
            name,
            as_of.isoformat(),
        )

    def log_repository_skipped(
        self, org: str, name: str, last_changed: dt.datetime
    ) -> None:
        """Log a repository skipped because its record is current."""
        log_info(
            logger,
            "[%s] repo_slug=%s/%s last_changed=%s",
            SyncEventType.REPOSITORY_SKIPPED,
            org,
            name,
            last_changed.isoformat(),
        )

    def log_repository_deleted(self, org: str, name: str) -> None:
        """Log a record removed during reconciliation."""
        log_info(
            logger,
            "[%s] repo_slug=%s/%s",
            SyncEventType.REPOSITORY_DELETED,
            org,
            name,
        )
