"""Durable build queue: store, worker and build runners."""

from release_queue.queue.builder import BuildError, CommandPackageBuilder, PackageBuilder
from release_queue.queue.models import QueueEntry, ReleaseRecord
from release_queue.queue.store import QueueStore, StoreError
from release_queue.queue.worker import DrainSummary, QueueWorker

__all__ = [
    "BuildError",
    "CommandPackageBuilder",
    "DrainSummary",
    "PackageBuilder",
    "QueueEntry",
    "QueueStore",
    "QueueWorker",
    "ReleaseRecord",
    "StoreError",
]
