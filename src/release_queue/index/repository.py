"""Git checkout of the package index, driven through the git binary."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "master"


class RepositoryError(RuntimeError):
    """Index checkout could not be read or updated."""


class DiffOrigin(str, Enum):
    """Role of one line inside a patch hunk."""

    ADDITION = "+"
    DELETION = "-"
    CONTEXT = " "


@dataclass(frozen=True, slots=True)
class DiffLine:
    """Hunk line without its origin marker or trailing newline."""

    content: str
    origin: DiffOrigin

    @property
    def is_addition(self) -> bool:
        return self.origin is DiffOrigin.ADDITION


class IndexRepository(Protocol):
    """Capabilities the synchronizer needs from the index checkout."""

    def head_tree(self) -> str:
        """Return the tree id HEAD points to."""

    def fetch_all_refs(self) -> None:
        """Fetch every remote branch into remote-tracking refs."""

    def reset_hard_to(self, ref: str) -> None:
        """Hard-reset the working copy to ``ref``."""

    def diff(self, old_tree: str, new_tree: str) -> list[DiffLine]:
        """Patch lines between two trees in file order, hunk order."""


class GitIndexRepository:
    """Production implementation using subprocess.

    Not safe to use from two processes at once: fetch and reset mutate the
    shared working copy.
    """

    def __init__(
        self,
        path: Path,
        *,
        remote: str = DEFAULT_REMOTE,
        timeout_seconds: float | None = None,
    ) -> None:
        self.path = path
        self.remote = remote
        self.timeout_seconds = timeout_seconds

    def head_tree(self) -> str:
        result = self._run(
            ["rev-parse", "--verify", "--quiet", "HEAD^{tree}"],
            operation="resolve HEAD",
            check=False,
        )
        tree_id = result.stdout.strip()
        if result.returncode != 0 or not tree_id:
            raise RepositoryError(f"HEAD SHA1 not found in {self.path}")
        return tree_id

    def fetch_all_refs(self) -> None:
        refspec = f"+refs/heads/*:refs/remotes/{self.remote}/*"
        self._run(["fetch", "--quiet", self.remote, refspec], operation="fetch index")

    def reset_hard_to(self, ref: str) -> None:
        self._run(["rev-parse", "--verify", "--quiet", ref], operation=f"resolve {ref}")
        self._run(["reset", "--hard", "--quiet", ref], operation=f"reset to {ref}")

    def diff(self, old_tree: str, new_tree: str) -> list[DiffLine]:
        result = self._run(
            ["diff", "--no-color", "--no-ext-diff", "--no-renames", old_tree, new_tree],
            operation="diff index trees",
        )
        return parse_patch(result.stdout)

    def _run(
        self,
        args: list[str],
        *,
        operation: str,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        try:
            result = subprocess.run(  # noqa: S603
                ["git", *args],  # noqa: S607
                cwd=self.path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise RepositoryError("git executable not found") from error
        except subprocess.TimeoutExpired as error:
            raise RepositoryError(
                f"Failed to {operation}: timed out after {self.timeout_seconds}s",
            ) from error
        except OSError as error:
            raise RepositoryError(f"Failed to {operation}: {error}") from error

        if check and result.returncode != 0:
            stderr = result.stderr.strip() or f"git exited with code {result.returncode}"
            raise RepositoryError(f"Failed to {operation}: {stderr}")
        return result


def open_index_repository(
    path: Path,
    *,
    remote: str = DEFAULT_REMOTE,
    timeout_seconds: float | None = None,
) -> GitIndexRepository:
    """Attach to an existing index checkout."""

    if not path.is_dir():
        raise RepositoryError(f"Index checkout does not exist: {path}")
    repository = GitIndexRepository(path, remote=remote, timeout_seconds=timeout_seconds)
    result = repository._run(
        ["rev-parse", "--is-inside-work-tree"],
        operation="open index checkout",
        check=False,
    )
    if result.returncode != 0 or result.stdout.strip() != "true":
        raise RepositoryError(f"Not a git work tree: {path}")
    return repository


def parse_patch(patch: str) -> list[DiffLine]:
    """Split ``git diff`` output into hunk lines.

    File headers (``diff --git``, ``index``, ``---``, ``+++``) are outside
    hunks and never reported, so a ``+++ b/path`` header is not an addition.
    """

    lines: list[DiffLine] = []
    in_hunk = False
    for raw_line in patch.split("\n"):
        if raw_line.startswith("diff --git "):
            in_hunk = False
            continue
        if raw_line.startswith("@@"):
            in_hunk = True
            continue
        if not in_hunk or not raw_line:
            continue
        marker, content = raw_line[0], raw_line[1:]
        if marker == "+":
            lines.append(DiffLine(content=content, origin=DiffOrigin.ADDITION))
        elif marker == "-":
            lines.append(DiffLine(content=content, origin=DiffOrigin.DELETION))
        elif marker == " ":
            lines.append(DiffLine(content=content, origin=DiffOrigin.CONTEXT))
        # "\ No newline at end of file" and anything else is ignored
    return lines
