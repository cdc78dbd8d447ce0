"""Runtime configuration for index sync and queue draining."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from release_queue.queue.builder import check_command_template


@dataclass(slots=True)
class IndexSettings:
    """Package index checkout settings."""

    path: Path = Path("crates.io-index")
    remote: str = "origin"
    branch: str = "master"
    git_timeout_seconds: float = 300.0

    @property
    def branch_ref(self) -> str:
        return f"refs/remotes/{self.remote}/{self.branch}"


@dataclass(slots=True)
class BuildSettings:
    """Build command settings."""

    command_template: str = ""
    timeout_seconds: float = 3600.0


@dataclass(slots=True)
class WorkerSettings:
    """Supervising loop settings."""

    run_interval_seconds: float = 60.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".release_queue.db")
    sqlite_busy_timeout_ms: int = 5000
    log_level: str = "WARNING"
    index: IndexSettings = field(default_factory=IndexSettings)
    build: BuildSettings = field(default_factory=BuildSettings)
    worker: WorkerSettings = field(default_factory=WorkerSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None, index_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("RELEASE_QUEUE_DB_PATH", ".release_queue.db")),
            sqlite_busy_timeout_ms=_env_int("RELEASE_QUEUE_SQLITE_BUSY_TIMEOUT_MS", 5000),
            log_level=os.getenv("RELEASE_QUEUE_LOG_LEVEL", "WARNING").strip().upper(),
            index=IndexSettings(
                path=index_path
                or Path(os.getenv("RELEASE_QUEUE_INDEX_PATH", "crates.io-index")),
                remote=os.getenv("RELEASE_QUEUE_INDEX_REMOTE", "origin").strip(),
                branch=os.getenv("RELEASE_QUEUE_INDEX_BRANCH", "master").strip(),
                git_timeout_seconds=_env_float("RELEASE_QUEUE_GIT_TIMEOUT_SECONDS", 300.0),
            ),
            build=BuildSettings(
                command_template=os.getenv("RELEASE_QUEUE_BUILD_COMMAND", "").strip(),
                timeout_seconds=_env_float("RELEASE_QUEUE_BUILD_TIMEOUT_SECONDS", 3600.0),
            ),
            worker=WorkerSettings(
                run_interval_seconds=_env_float("RELEASE_QUEUE_RUN_INTERVAL_SECONDS", 60.0),
            ),
        )

    def validate_logging(self) -> None:
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid RELEASE_QUEUE_LOG_LEVEL: {self.log_level!r}")

    def validate_for_sync(self) -> None:
        """Raise configuration error if the index checkout settings are unusable."""

        if not self.index.remote:
            raise ValueError("RELEASE_QUEUE_INDEX_REMOTE must not be empty.")
        if not self.index.branch:
            raise ValueError("RELEASE_QUEUE_INDEX_BRANCH must not be empty.")
        if self.index.git_timeout_seconds <= 0:
            raise ValueError("RELEASE_QUEUE_GIT_TIMEOUT_SECONDS must be > 0.")

    def validate_for_build(self) -> None:
        """Raise configuration error if no usable build command is configured."""

        template = self.build.command_template
        if not template:
            raise ValueError(
                "A build command is required. "
                "Set RELEASE_QUEUE_BUILD_COMMAND or pass --build-command.",
            )
        try:
            check_command_template(template)
        except ValueError as error:
            raise ValueError(
                f"RELEASE_QUEUE_BUILD_COMMAND is unusable: {error} ({template!r})",
            ) from error
        if self.build.timeout_seconds <= 0:
            raise ValueError("RELEASE_QUEUE_BUILD_TIMEOUT_SECONDS must be > 0.")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {raw!r}") from error
