"""Package index checkout tracking and release extraction."""

from release_queue.index.records import ParseError, parse_release_line
from release_queue.index.repository import (
    DiffLine,
    DiffOrigin,
    GitIndexRepository,
    IndexRepository,
    RepositoryError,
    open_index_repository,
)
from release_queue.index.synchronizer import IndexSynchronizer, SyncSummary

__all__ = [
    "DiffLine",
    "DiffOrigin",
    "GitIndexRepository",
    "IndexRepository",
    "IndexSynchronizer",
    "ParseError",
    "RepositoryError",
    "SyncSummary",
    "open_index_repository",
    "parse_release_line",
]
