"""SQL document-table adapter for the MetricStore protocol.

Each metric record is kept whole as a JSON document beside the indexed key
columns, so the table behaves as a document collection keyed by
``(org, repository_name)`` on any SQLAlchemy async backend.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec
from sqlalchemy import JSON, DateTime, Index, String, UniqueConstraint, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from gitwhat.common.time import utcnow
from gitwhat.logging import get_logger, log_debug, log_warning

from .errors import StorageError
from .models import CacheStats, MetricKey, MetricRecord

if typ.TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from .models import ListMetricOptions

    SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for metric tables."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive values and normalise aware ones to UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "metric timestamps must be timezone aware"
            raise ValueError(msg)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class RepositoryMetricDocument(Base):
    """Latest metric record for a repository."""

    __tablename__ = "repository_metrics"
    __table_args__ = (
        UniqueConstraint("org", "repository_name", name="uq_repository_metrics_key"),
        Index("ix_repository_metrics_org", "org"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    org: Mapped[str] = mapped_column(String(255))
    repository_name: Mapped[str] = mapped_column(String(255))
    as_of: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    document: Mapped[dict[str, typ.Any]] = mapped_column(JSON)
    stored_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


class MetricCacheStats(Base):
    """Per-organisation sync watermark."""

    __tablename__ = "metric_cache_stats"

    org: Mapped[str] = mapped_column(String(255), primary_key=True)
    updated_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)


async def init_metric_storage(engine: AsyncEngine) -> None:
    """Create metric tables if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _key_filter(org: str, name: str) -> Select[tuple[RepositoryMetricDocument]]:
    return select(RepositoryMetricDocument).where(
        RepositoryMetricDocument.org == org,
        RepositoryMetricDocument.repository_name == name,
    )


class SqlMetricStore:
    """Store metric records as JSON documents in a SQL table."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the store to an async session factory."""
        self._session_factory = session_factory

    async def store(self, record: MetricRecord) -> None:
        """Insert or replace the document for the record's key."""
        document = msgspec.to_builtins(record)
        log_debug(
            logger,
            "Writing metric document for %s/%s",
            record.org,
            record.repository_name,
        )
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.scalar(
                    _key_filter(record.org, record.repository_name)
                )
                if row is None:
                    session.add(
                        RepositoryMetricDocument(
                            org=record.org,
                            repository_name=record.repository_name,
                            as_of=record.as_of,
                            document=document,
                        )
                    )
                else:
                    row.as_of = record.as_of
                    row.document = document
        except SQLAlchemyError as exc:
            target = f"{record.org}/{record.repository_name}"
            raise StorageError("store", target, str(exc)) from exc

    async def read(self, org: str, name: str) -> tuple[bool, MetricRecord | None]:
        """Return the stored document for ``org``/``name`` if present."""
        try:
            async with self._session_factory() as session:
                row = await session.scalar(_key_filter(org, name))
                document = None if row is None else row.document
        except SQLAlchemyError as exc:
            raise StorageError("read", f"{org}/{name}", str(exc)) from exc

        if document is None:
            return (False, None)
        try:
            return (True, msgspec.convert(document, type=MetricRecord))
        except msgspec.ValidationError as exc:
            raise StorageError("read", f"{org}/{name}", str(exc)) from exc

    async def delete(self, org: str, name: str) -> None:
        """Delete the document for the key if it exists."""
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.scalar(_key_filter(org, name))
                if row is not None:
                    await session.delete(row)
        except SQLAlchemyError as exc:
            raise StorageError("delete", f"{org}/{name}", str(exc)) from exc

    async def list_keys(self, options: ListMetricOptions) -> list[MetricKey]:
        """Return stored keys that satisfy the filters, ordered by key."""
        query = select(
            RepositoryMetricDocument.org, RepositoryMetricDocument.repository_name
        ).order_by(
            RepositoryMetricDocument.org, RepositoryMetricDocument.repository_name
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(query)).all()
        except SQLAlchemyError as exc:
            raise StorageError("list", "repository_metrics", str(exc)) from exc

        keys = (MetricKey(org=org, name=name) for org, name in rows)
        return [key for key in keys if options.matches(key)]

    async def store_cache_stats(self, org: str, stats: CacheStats) -> None:
        """Upsert the organisation watermark, logging failures as warnings."""
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.get(MetricCacheStats, org)
                if row is None:
                    session.add(MetricCacheStats(org=org, updated_at=stats.updated_at))
                else:
                    row.updated_at = stats.updated_at
        except SQLAlchemyError as exc:
            log_warning(logger, "Unable to store cache stats for org %s: %s", org, exc)

    async def read_cache_stats(self, org: str) -> tuple[bool, CacheStats | None]:
        """Return the organisation watermark; failures read as not found."""
        try:
            async with self._session_factory() as session:
                row = await session.get(MetricCacheStats, org)
                updated_at = None if row is None else row.updated_at
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Unable to read cache stats for org %s, treating as not found: %s",
                org,
                exc,
            )
            return (False, None)

        if row is None:
            return (False, None)
        return (True, CacheStats(org=org, updated_at=updated_at))
