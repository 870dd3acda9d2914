r"""Filesystem adapter for the MetricStore protocol.

Each record is a JSON file in a single directory::

    {data_dir}/org-{org}.repo-{name}.json
    {data_dir}/org-{org}.cache-stats.json

Usage
-----
>>> import asyncio
>>> from pathlib import Path
>>> from gitwhat.metrics.file_store import FileMetricStore
>>>
>>> store = FileMetricStore(Path("~/.git-metrics").expanduser())
>>> found, record = asyncio.run(store.read("acme", "widget"))

"""

from __future__ import annotations

import asyncio
import re
import typing as typ

import msgspec

from gitwhat.logging import get_logger, log_debug, log_warning

from .errors import StorageError
from .models import CacheStats, MetricKey, MetricRecord

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .models import ListMetricOptions

logger = get_logger(__name__)

_RECORD_FILE_PATTERN = re.compile(r"^org-(.+?)\.repo-(.+)\.json$")

_T = typ.TypeVar("_T")


class FileMetricStore:
    """Store metric records as one JSON file per repository.

    Parameters
    ----------
    data_dir
        Directory holding the metric files; created on first write.

    """

    def __init__(self, data_dir: Path) -> None:
        """Initialise the store with its data directory."""
        self._data_dir = data_dir

    @property
    def data_dir(self) -> Path:
        """Return the directory the store writes to."""
        return self._data_dir

    def record_path(self, org: str, name: str) -> Path:
        """Return the file path for a repository record."""
        return self._data_dir / f"org-{org}.repo-{name}.json"

    def cache_stats_path(self, org: str) -> Path:
        """Return the file path for an organisation's cache statistics."""
        return self._data_dir / f"org-{org}.cache-stats.json"

    async def store(self, record: MetricRecord) -> None:
        """Write the record, replacing any previous file for the key."""
        path = self.record_path(record.org, record.repository_name)
        log_debug(
            logger,
            "Writing metric data for repository %s to file %s",
            record.repository_name,
            path,
        )
        try:
            await asyncio.to_thread(self._write, path, msgspec.json.encode(record))
        except OSError as exc:
            raise StorageError("store", str(path), str(exc)) from exc

    async def read(self, org: str, name: str) -> tuple[bool, MetricRecord | None]:
        """Read the record for ``org``/``name`` if its file exists."""
        path = self.record_path(org, name)
        log_debug(logger, "Reading metric data for %s/%s from %s", org, name, path)
        try:
            record = await asyncio.to_thread(self._read, path, MetricRecord)
        except (OSError, msgspec.DecodeError) as exc:
            raise StorageError("read", str(path), str(exc)) from exc
        return (record is not None, record)

    async def delete(self, org: str, name: str) -> None:
        """Remove the record file; a missing file is not an error."""
        path = self.record_path(org, name)
        log_debug(logger, "Deleting metric data for %s/%s from %s", org, name, path)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError("delete", str(path), str(exc)) from exc

    async def list_keys(self, options: ListMetricOptions) -> list[MetricKey]:
        """Return keys of record files in the data directory that match."""
        try:
            names = await asyncio.to_thread(self._list_file_names)
        except OSError as exc:
            raise StorageError("list", str(self._data_dir), str(exc)) from exc

        keys: list[MetricKey] = []
        for file_name in names:
            match = _RECORD_FILE_PATTERN.match(file_name)
            if match is None:
                continue
            key = MetricKey(org=match.group(1), name=match.group(2))
            if options.matches(key):
                keys.append(key)
            else:
                log_debug(logger, "Filtered metric file %s", file_name)
        return keys

    async def store_cache_stats(self, org: str, stats: CacheStats) -> None:
        """Write cache statistics, logging failures as warnings."""
        path = self.cache_stats_path(org)
        log_debug(logger, "Writing cache stats to file %s", path)
        try:
            await asyncio.to_thread(self._write, path, msgspec.json.encode(stats))
        except OSError as exc:
            log_warning(
                logger, "Problem writing cache statistics to file %s: %s", path, exc
            )

    async def read_cache_stats(self, org: str) -> tuple[bool, CacheStats | None]:
        """Read cache statistics; unreadable files count as not found."""
        path = self.cache_stats_path(org)
        log_debug(logger, "Reading cache stats from file %s", path)
        try:
            stats = await asyncio.to_thread(self._read, path, CacheStats)
        except (OSError, msgspec.DecodeError) as exc:
            log_warning(
                logger,
                "Problem reading cache statistics from file %s, treating as not "
                "found: %s",
                path,
                exc,
            )
            return (False, None)
        return (stats is not None, stats)

    def _write(self, path: Path, data: bytes) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    @staticmethod
    def _read(path: Path, type_: type[_T]) -> _T | None:
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        return msgspec.json.decode(data, type=type_)

    def _list_file_names(self) -> list[str]:
        if not self._data_dir.exists():
            return []
        return sorted(
            entry.name for entry in self._data_dir.iterdir() if entry.is_file()
        )
