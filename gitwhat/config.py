"""Runtime configuration for metric harvesting.

Usage
-----
Create a configuration with defaults:

>>> config = AppConfig()
>>> config.org
'day2devops'

Or load from environment variables:

>>> import os
>>> os.environ["GITWHAT_ORG"] = "acme"
>>> AppConfig.from_env().org
'acme'

"""

from __future__ import annotations

import contextlib
import dataclasses as dc
import os
import typing as typ
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from gitwhat.metrics.errors import StorageError
from gitwhat.metrics.file_store import FileMetricStore
from gitwhat.metrics.sql_store import SqlMetricStore, init_metric_storage

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from gitwhat.metrics.store import MetricStore

StoreKind: typ.TypeAlias = typ.Literal["file", "sql"]

DEFAULT_ORG = "day2devops"
DEFAULT_DATA_DIR = Path("~/.git-metrics")
_STORE_KINDS: tuple[StoreKind, ...] = ("file", "sql")


class ConfigError(ValueError):
    """Raised when runtime configuration is invalid."""


def _parse_store_kind(raw: str) -> StoreKind:
    candidate = raw.strip().lower() or "file"
    for kind in _STORE_KINDS:
        if candidate == kind:
            return kind
    msg = f"GITWHAT_STORE must be one of {', '.join(_STORE_KINDS)}, got: {raw!r}"
    raise ConfigError(msg)


@dc.dataclass(frozen=True, slots=True)
class AppConfig:
    """Settings for an ``update-metrics`` run.

    Attributes
    ----------
    org
        Organisation to harvest. Default is ``day2devops``.
    data_dir
        Directory used by the file store. Default is ``~/.git-metrics``.
    store
        Storage backend, ``file`` or ``sql``.
    database_url
        SQLAlchemy async URL; required when ``store`` is ``sql``.
    log_level
        femtologging level name.

    """

    org: str = DEFAULT_ORG
    data_dir: Path = DEFAULT_DATA_DIR
    store: StoreKind = "file"
    database_url: str | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> AppConfig:
        """Create configuration from environment variables.

        Reads ``GITWHAT_ORG``, ``GITWHAT_DATA_DIR``, ``GITWHAT_STORE``,
        ``GITWHAT_DATABASE_URL`` and ``GITWHAT_LOG_LEVEL``; blank values use
        the defaults.

        Raises
        ------
        ConfigError
            If ``GITWHAT_STORE`` names an unknown backend.

        """
        raw_data_dir = os.environ.get("GITWHAT_DATA_DIR", "").strip()
        raw_database_url = os.environ.get("GITWHAT_DATABASE_URL", "").strip()
        return cls(
            org=os.environ.get("GITWHAT_ORG", "").strip() or DEFAULT_ORG,
            data_dir=Path(raw_data_dir) if raw_data_dir else DEFAULT_DATA_DIR,
            store=_parse_store_kind(os.environ.get("GITWHAT_STORE", "")),
            database_url=raw_database_url or None,
            log_level=os.environ.get("GITWHAT_LOG_LEVEL", "").strip() or "INFO",
        )

    def with_overrides(self, **changes: object) -> AppConfig:
        """Return a copy with the non-``None`` values in ``changes`` applied."""
        return dc.replace(
            self,
            **{key: value for key, value in changes.items() if value is not None},
        )

    def validate(self) -> None:
        """Check cross-field constraints.

        Raises
        ------
        ConfigError
            If the backend is unknown, or the SQL backend is selected without
            a database URL.

        """
        _parse_store_kind(self.store)
        if self.store == "sql" and not self.database_url:
            msg = "GITWHAT_DATABASE_URL is required when GITWHAT_STORE is sql"
            raise ConfigError(msg)


@contextlib.asynccontextmanager
async def open_metric_store(config: AppConfig) -> cabc.AsyncIterator[MetricStore]:
    """Yield the metric store selected by ``config``.

    The SQL backend creates its tables on first use and disposes of its
    engine on exit.

    Raises
    ------
    StorageError
        If the database URL cannot be used or the tables cannot be created.

    """
    config.validate()
    if config.store == "file":
        yield FileMetricStore(config.data_dir.expanduser())
        return

    try:
        engine = create_async_engine(typ.cast("str", config.database_url))
    except SQLAlchemyError as exc:
        raise StorageError("connect", "database", str(exc)) from exc
    try:
        try:
            await init_metric_storage(engine)
        except SQLAlchemyError as exc:
            raise StorageError("init", "database", str(exc)) from exc
        yield SqlMetricStore(async_sessionmaker(engine, expire_on_commit=False))
    finally:
        await engine.dispose()
