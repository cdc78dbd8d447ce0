"""CLI entrypoint for release-queue."""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

import rich_click as click

from release_queue import __version__
from release_queue.config import Settings
from release_queue.controllers import (
    AddReleaseCommand,
    DrainCommand,
    ListQueueCommand,
    QueueCliController,
    RemoveEntryCommand,
    RunCommand,
    SyncCommand,
)
from release_queue.index.repository import RepositoryError
from release_queue.queue.store import StoreError

click.rich_click.USE_MARKDOWN = True
QUEUE_CONTROLLER = QueueCliController()


@click.group()
@click.version_option(version=__version__, prog_name="release-queue")
def release_queue() -> None:
    """Package index release tracker and build queue."""

    try:
        settings = Settings.from_env()
        settings.validate_logging()
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@release_queue.group()
def index() -> None:
    """Package index commands."""


@index.command("sync")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--index-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Local git checkout of the package index.",
)
def index_sync(db_path: Path | None, index_path: Path | None) -> None:
    """Fetch the index and enqueue every newly added release."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.sync(SyncCommand(db_path=db_path, index_path=index_path)),
    )


@release_queue.group()
def queue() -> None:
    """Build queue commands."""


@queue.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=None,
    help="Show at most this many entries.",
)
def queue_list(db_path: Path | None, limit: int | None) -> None:
    """List pending entries in build order."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.list_entries(ListQueueCommand(db_path=db_path, limit=limit)),
    )


@queue.command("add")
@click.argument("name")
@click.argument("version")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def queue_add(name: str, version: str, db_path: Path | None) -> None:
    """Enqueue one release by hand."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.add(
            AddReleaseCommand(db_path=db_path, name=name, version=version),
        ),
    )


@queue.command("remove")
@click.argument("entry_id", type=int)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def queue_remove(entry_id: int, db_path: Path | None) -> None:
    """Remove an entry by id. Missing ids are reported, not treated as errors."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.remove(RemoveEntryCommand(db_path=db_path, entry_id=entry_id)),
    )


@queue.command("drain")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--build-command",
    default=None,
    help="Build command template with {name} and {version}. Overrides RELEASE_QUEUE_BUILD_COMMAND.",
)
def queue_drain(db_path: Path | None, build_command: str | None) -> None:
    """Build every pending entry once; failed builds stay queued."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.drain(
            DrainCommand(db_path=db_path, build_command=build_command),
        ),
    )


@release_queue.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--index-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Local git checkout of the package index.",
)
@click.option(
    "--build-command",
    default=None,
    help="Build command template with {name} and {version}. Overrides RELEASE_QUEUE_BUILD_COMMAND.",
)
@click.option(
    "--interval-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Pause between passes. Defaults to RELEASE_QUEUE_RUN_INTERVAL_SECONDS.",
)
@click.option(
    "--max-passes",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many sync + drain passes.",
)
def run(
    db_path: Path | None,
    index_path: Path | None,
    build_command: str | None,
    interval_seconds: float | None,
    max_passes: int | None,
) -> None:
    """Alternate index sync and queue drain passes."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.run(
            RunCommand(
                db_path=db_path,
                index_path=index_path,
                build_command=build_command,
                interval_seconds=interval_seconds,
                max_passes=max_passes,
            ),
        ),
    )


def _emit_lines(produce: Callable[[], Iterable[str]]) -> None:
    try:
        for line in produce():
            click.echo(line)
    except (RepositoryError, StoreError, ValueError) as error:
        raise click.ClickException(str(error)) from error


if __name__ == "__main__":  # pragma: no cover
    release_queue()
