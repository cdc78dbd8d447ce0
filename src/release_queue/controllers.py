"""Controllers for release-queue CLI commands."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from release_queue.config import Settings
from release_queue.index.repository import RepositoryError, open_index_repository
from release_queue.index.synchronizer import IndexSynchronizer, SyncSummary
from release_queue.queue.builder import CommandPackageBuilder
from release_queue.queue.models import ReleaseRecord
from release_queue.queue.store import QueueStore
from release_queue.queue.worker import DrainSummary, QueueWorker

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncCommand:
    """CLI input for one index sync pass."""

    db_path: Path | None
    index_path: Path | None


@dataclass(slots=True)
class ListQueueCommand:
    """CLI input for queue listing."""

    db_path: Path | None
    limit: int | None


@dataclass(slots=True)
class AddReleaseCommand:
    """CLI input for manual enqueue."""

    db_path: Path | None
    name: str
    version: str


@dataclass(slots=True)
class RemoveEntryCommand:
    """CLI input for entry removal."""

    db_path: Path | None
    entry_id: int


@dataclass(slots=True)
class DrainCommand:
    """CLI input for one drain pass."""

    db_path: Path | None
    build_command: str | None


@dataclass(slots=True)
class RunCommand:
    """CLI input for the sync + drain loop."""

    db_path: Path | None
    index_path: Path | None
    build_command: str | None
    interval_seconds: float | None
    max_passes: int | None


class QueueCliController:
    """Coordinates index sync, queue inspection and drain CLI operations."""

    def __init__(self, *, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    def sync(self, command: SyncCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, index_path=command.index_path)
        settings.validate_for_sync()
        with _store(settings) as store:
            summary = _sync_pass(settings, store)
        return [_render_sync_summary(summary)]

    def list_entries(self, command: ListQueueCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings) as store:
            entries = store.list_pending(limit=command.limit)
            total = store.count()

        lines = [f"Pending entries: {total}"]
        lines.extend(
            f"{entry.id}\t{entry.name}\t{entry.version}\t{entry.created_at.isoformat()}"
            for entry in entries
        )
        return lines

    def add(self, command: AddReleaseCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        record = ReleaseRecord(name=command.name, version=command.version)
        with _store(settings) as store:
            entry = store.enqueue(record)
        return [f"Entry enqueued: id={entry.id} name={entry.name} version={entry.version}"]

    def remove(self, command: RemoveEntryCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings) as store:
            removed = store.remove(command.entry_id)
        state = "removed" if removed else "not found"
        return [f"Entry {command.entry_id}: {state}"]

    def drain(self, command: DrainCommand) -> list[str]:
        settings = _with_build_command(Settings.from_env(db_path=command.db_path), command)
        settings.validate_for_build()
        with _store(settings) as store:
            summary = _drain_pass(settings, store)
        return [_render_drain_summary(summary)]

    def run(self, command: RunCommand) -> Iterator[str]:
        """Alternate sync and drain passes; a failed sync does not skip the drain."""

        settings = _with_build_command(
            Settings.from_env(db_path=command.db_path, index_path=command.index_path),
            command,
        )
        settings.validate_for_sync()
        settings.validate_for_build()
        interval = (
            command.interval_seconds
            if command.interval_seconds is not None
            else settings.worker.run_interval_seconds
        )

        pass_no = 0
        with _store(settings) as store:
            while command.max_passes is None or pass_no < command.max_passes:
                pass_no += 1
                try:
                    yield f"[{pass_no}] {_render_sync_summary(_sync_pass(settings, store))}"
                except RepositoryError as error:
                    logger.error("Index sync failed: %s", error)
                    yield f"[{pass_no}] Sync failed: {error}"
                yield f"[{pass_no}] {_render_drain_summary(_drain_pass(settings, store))}"
                if command.max_passes is not None and pass_no >= command.max_passes:
                    break
                self._sleep(interval)


def _sync_pass(settings: Settings, store: QueueStore) -> SyncSummary:
    repository = open_index_repository(
        settings.index.path,
        remote=settings.index.remote,
        timeout_seconds=settings.index.git_timeout_seconds,
    )
    synchronizer = IndexSynchronizer(
        repository=repository,
        store=store,
        branch_ref=settings.index.branch_ref,
    )
    return synchronizer.sync_and_enqueue()


def _drain_pass(settings: Settings, store: QueueStore) -> DrainSummary:
    builder = CommandPackageBuilder(
        settings.build.command_template,
        timeout_seconds=settings.build.timeout_seconds,
    )
    return QueueWorker(store=store, builder=builder).drain_once()


def _with_build_command(settings: Settings, command: DrainCommand | RunCommand) -> Settings:
    if not command.build_command:
        return settings
    return replace(
        settings,
        build=replace(settings.build, command_template=command.build_command.strip()),
    )


def _render_sync_summary(summary: SyncSummary) -> str:
    if not summary.changed:
        return f"Index unchanged: tree={summary.new_tree}"
    return (
        "Sync summary: "
        f"enqueued={summary.enqueued} candidates={summary.candidates} "
        f"malformed={summary.malformed} incomplete={summary.incomplete} "
        f"enqueue_failures={summary.enqueue_failures} "
        f"tree={summary.old_tree[:12]}..{summary.new_tree[:12]}"
    )


def _render_drain_summary(summary: DrainSummary) -> str:
    return (
        "Drain summary: "
        f"attempted={summary.attempted} built={summary.built} "
        f"failed={summary.failed} remove_failures={summary.remove_failures}"
    )


@contextmanager
def _store(settings: Settings) -> Iterator[QueueStore]:
    store = QueueStore(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    try:
        store.init_schema()
        yield store
    finally:
        store.close()
