"""Persistent FIFO store for releases waiting to be built."""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import event, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Session, col, create_engine, delete, select

from release_queue.queue.models import QueueEntry, ReleaseRecord
from release_queue.storage.alembic_runner import upgrade_head
from release_queue.storage.common import to_utc_aware_datetime, utc_now
from release_queue.storage.sqlmodel_models import BuildQueueRow

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Queue storage could not complete a statement."""


class QueueStore:
    """Queue persistence facade backed by SQLModel + SQLite.

    One worker per store is assumed. Rows carry no claim or lease, so two
    concurrent drains may both build the same entry.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = _queue_engine(db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        try:
            upgrade_head(self.db_path)
        except (SQLAlchemyError, OSError) as error:
            raise StoreError(
                f"Failed to initialize queue schema at {self.db_path}: {error}",
            ) from error

    def enqueue(self, record: ReleaseRecord) -> QueueEntry:
        """Append one release; ids grow with call order."""

        try:
            with Session(self.engine) as session:
                row = BuildQueueRow(name=record.name, version=record.version, created_at=utc_now())
                session.add(row)
                session.commit()
                session.refresh(row)
                entry = _to_entry(row)
        except SQLAlchemyError as error:
            raise StoreError(
                f"Failed to enqueue {record.name}-{record.version}: {error}",
            ) from error
        logger.debug("Enqueued %s-%s as id=%d", entry.name, entry.version, entry.id)
        return entry

    def list_pending(self, *, limit: int | None = None) -> list[QueueEntry]:
        """Return pending entries in ascending id order from a single read."""

        statement = select(BuildQueueRow).order_by(col(BuildQueueRow.id).asc())
        if limit is not None:
            statement = statement.limit(limit)
        try:
            with Session(self.engine) as session:
                rows = session.exec(statement).all()
                return [_to_entry(row) for row in rows]
        except SQLAlchemyError as error:
            raise StoreError(f"Failed to list queue entries: {error}") from error

    def remove(self, entry_id: int) -> bool:
        """Delete an entry; absent ids are not an error."""

        try:
            with Session(self.engine) as session:
                result = session.exec(
                    delete(BuildQueueRow).where(col(BuildQueueRow.id) == entry_id),
                )
                session.commit()
        except SQLAlchemyError as error:
            raise StoreError(f"Failed to remove queue entry {entry_id}: {error}") from error
        return bool(result.rowcount)

    def count(self) -> int:
        try:
            with Session(self.engine) as session:
                return int(session.exec(select(func.count()).select_from(BuildQueueRow)).one())
        except SQLAlchemyError as error:
            raise StoreError(f"Failed to count queue entries: {error}") from error


def _to_entry(row: BuildQueueRow) -> QueueEntry:
    if row.id is None:
        raise StoreError("Queue row has no id after insert.")
    return QueueEntry(
        id=row.id,
        name=row.name,
        version=row.version,
        created_at=to_utc_aware_datetime(row.created_at),
    )


def _queue_engine(db_path: Path, *, busy_timeout_ms: int) -> Engine:
    """Unpooled SQLite engine whose connections use WAL and wait on locks."""

    wait_ms = max(1, busy_timeout_ms)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": wait_ms / 1000.0},
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute(f"PRAGMA busy_timeout = {wait_ms}")
        finally:
            cursor.close()

    return engine
