"""Metric derivation, storage and synchronisation."""

from __future__ import annotations

from .errors import StorageError
from .file_store import FileMetricStore
from .manager import SyncManager
from .models import (
    BuildMetric,
    CacheStats,
    CodeQualityMetric,
    ListMetricOptions,
    MetricKey,
    MetricRecord,
    PullRequestMetric,
    RunOptions,
    SyncResult,
)
from .observability import ErrorCategory, SyncEventLogger, categorize_error
from .sql_store import SqlMetricStore, init_metric_storage
from .store import MetricStore, org_options
from .transform import derive_metric

__all__ = [
    "BuildMetric",
    "CacheStats",
    "CodeQualityMetric",
    "ErrorCategory",
    "FileMetricStore",
    "ListMetricOptions",
    "MetricKey",
    "MetricRecord",
    "MetricStore",
    "PullRequestMetric",
    "RunOptions",
    "SqlMetricStore",
    "StorageError",
    "SyncEventLogger",
    "SyncManager",
    "SyncResult",
    "categorize_error",
    "derive_metric",
    "init_metric_storage",
    "org_options",
]
