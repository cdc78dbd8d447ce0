"""Shared test fixtures."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from release_queue.queue.store import QueueStore

_GIT_IDENTITY = (
    "-c",
    "user.name=Index Bot",
    "-c",
    "user.email=index-bot@example.com",
    "-c",
    "commit.gpgsign=false",
)


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *_GIT_IDENTITY, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@dataclass(slots=True)
class IndexRemote:
    """Upstream index repository plus a local clone that is synced from it."""

    upstream: Path
    checkout: Path

    def publish(self, relative_path: str, *lines: str, message: str = "Update index") -> None:
        """Append lines to a file upstream and commit them."""

        target = self.upstream / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        existing = target.read_text("utf-8") if target.exists() else ""
        target.write_text(existing + "".join(f"{line}\n" for line in lines), "utf-8")
        run_git(self.upstream, "add", relative_path)
        run_git(self.upstream, "commit", "--quiet", "-m", message)

    def rewrite(self, relative_path: str, *lines: str, message: str = "Rewrite index") -> None:
        target = self.upstream / relative_path
        target.write_text("".join(f"{line}\n" for line in lines), "utf-8")
        run_git(self.upstream, "add", relative_path)
        run_git(self.upstream, "commit", "--quiet", "-m", message)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep developer RELEASE_QUEUE_* variables out of tests."""

    for name in list(os.environ):
        if name.startswith("RELEASE_QUEUE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def store(tmp_path: Path):
    queue_store = QueueStore(tmp_path / "queue.db")
    queue_store.init_schema()
    yield queue_store
    queue_store.close()


@pytest.fixture()
def index_remote(tmp_path: Path) -> IndexRemote:
    """Upstream repo with one published release and a clone of it."""

    if shutil.which("git") is None:
        pytest.skip("git executable is required")

    upstream = tmp_path / "upstream"
    upstream.mkdir()
    run_git(upstream, "init", "--quiet")
    run_git(upstream, "symbolic-ref", "HEAD", "refs/heads/master")
    (upstream / "config.json").write_text('{"dl": "https://example.com/api/v1/crates"}\n', "utf-8")
    run_git(upstream, "add", "config.json")
    run_git(upstream, "commit", "--quiet", "-m", "Initial index")

    remote = IndexRemote(upstream=upstream, checkout=tmp_path / "checkout")
    remote.publish("3/f/foo", '{"name":"foo","vers":"0.9.0","deps":[]}', message="Seed foo")
    run_git(tmp_path, "clone", "--quiet", str(upstream), str(remote.checkout))
    return remote
