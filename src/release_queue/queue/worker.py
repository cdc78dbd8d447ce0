"""Queue worker that builds pending releases in insertion order."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from release_queue.queue.builder import PackageBuilder
from release_queue.queue.store import QueueStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DrainSummary:
    """Aggregate drain counters for CLI reporting."""

    attempted: int = 0
    built: int = 0
    failed: int = 0
    remove_failures: int = 0


class QueueWorker:
    """Drains the build queue one pass at a time.

    A failed build leaves its entry in place, so the next pass retries it.
    There is no attempt counter and no backoff. Run at most one worker per
    store.
    """

    def __init__(self, *, store: QueueStore, builder: PackageBuilder) -> None:
        self.store = store
        self.builder = builder

    def drain_once(self) -> DrainSummary:
        """Attempt every pending entry once; never raises for per-entry failures."""

        summary = DrainSummary()
        try:
            entries = self.store.list_pending()
        except StoreError as error:
            logger.warning("Failed to read build queue: %s", error)
            return summary

        for entry in entries:
            summary.attempted += 1
            try:
                self.builder.build(entry.name, entry.version)
            except Exception as error:  # noqa: BLE001
                summary.failed += 1
                logger.warning(
                    "Failed to build package %s-%s from queue (id=%d): %s",
                    entry.name,
                    entry.version,
                    entry.id,
                    error,
                )
                continue

            summary.built += 1
            try:
                self.store.remove(entry.id)
            except StoreError as error:
                summary.remove_failures += 1
                logger.warning(
                    "Built %s-%s but could not remove queue entry %d: %s",
                    entry.name,
                    entry.version,
                    entry.id,
                    error,
                )

        logger.info(
            "Drain pass finished: attempted=%d built=%d failed=%d",
            summary.attempted,
            summary.built,
            summary.failed,
        )
        return summary
