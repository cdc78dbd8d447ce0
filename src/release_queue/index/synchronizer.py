"""Detect newly published releases and push them into the build queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from release_queue.index.records import ParseError, is_record_candidate, parse_release_line
from release_queue.index.repository import DEFAULT_BRANCH, DiffLine, IndexRepository
from release_queue.queue.store import QueueStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncSummary:
    """Counters for one sync pass."""

    old_tree: str = ""
    new_tree: str = ""
    added_lines: int = 0
    candidates: int = 0
    enqueued: int = 0
    malformed: int = 0
    incomplete: int = 0
    enqueue_failures: int = 0

    @property
    def changed(self) -> bool:
        return self.old_tree != self.new_tree


class IndexSynchronizer:
    """Advance the index checkout and enqueue every release it added.

    The previous HEAD tree is the only cursor. Once the reset has moved HEAD,
    a crash before the diff is consumed loses the unprocessed records, and a
    rerun after a partial pass may enqueue some of them twice.
    """

    def __init__(
        self,
        *,
        repository: IndexRepository,
        store: QueueStore,
        branch_ref: str = f"refs/remotes/origin/{DEFAULT_BRANCH}",
    ) -> None:
        self.repository = repository
        self.store = store
        self.branch_ref = branch_ref

    def sync_and_enqueue(self) -> SyncSummary:
        """Run one pass; raises RepositoryError before touching the queue."""

        old_tree = self.repository.head_tree()
        self.repository.fetch_all_refs()
        self.repository.reset_hard_to(self.branch_ref)
        new_tree = self.repository.head_tree()

        summary = SyncSummary(old_tree=old_tree, new_tree=new_tree)
        if not summary.changed:
            logger.info("Index unchanged at tree %s", new_tree)
            return summary

        for line in self.repository.diff(old_tree, new_tree):
            self._consume_line(line, summary)

        logger.info(
            "Index synced %s..%s: enqueued=%d malformed=%d incomplete=%d enqueue_failures=%d",
            old_tree[:12],
            new_tree[:12],
            summary.enqueued,
            summary.malformed,
            summary.incomplete,
            summary.enqueue_failures,
        )
        return summary

    def _consume_line(self, line: DiffLine, summary: SyncSummary) -> None:
        if not line.is_addition:
            return
        summary.added_lines += 1
        if not is_record_candidate(line.content):
            return
        summary.candidates += 1

        try:
            record = parse_release_line(line.content)
        except ParseError as error:
            summary.malformed += 1
            logger.warning("Failed to parse index line %r: %s", line.content[:200], error)
            return
        if record is None:
            summary.incomplete += 1
            logger.debug("Skipping index line without name/vers: %r", line.content[:200])
            return

        try:
            self.store.enqueue(record)
        except StoreError as error:
            summary.enqueue_failures += 1
            logger.warning("Failed to enqueue %s-%s: %s", record.name, record.version, error)
            return
        summary.enqueued += 1
