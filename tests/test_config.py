from __future__ import annotations

from pathlib import Path

import allure
import pytest

from release_queue.config import BuildSettings, IndexSettings, Settings

pytestmark = [
    allure.epic("Operations"),
    allure.feature("Configuration"),
]


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".release_queue.db")
    assert settings.index.path == Path("crates.io-index")
    assert settings.index.branch_ref == "refs/remotes/origin/master"
    assert settings.build.command_template == ""
    assert settings.log_level == "WARNING"
    assert settings.worker.run_interval_seconds == 60.0


def test_from_env_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("RELEASE_QUEUE_DB_PATH", "/var/lib/release-queue/queue.db")
    monkeypatch.setenv("RELEASE_QUEUE_INDEX_PATH", "/srv/index")
    monkeypatch.setenv("RELEASE_QUEUE_INDEX_REMOTE", "upstream")
    monkeypatch.setenv("RELEASE_QUEUE_INDEX_BRANCH", "main")
    monkeypatch.setenv("RELEASE_QUEUE_GIT_TIMEOUT_SECONDS", "45")
    monkeypatch.setenv("RELEASE_QUEUE_BUILD_COMMAND", " cratesfyi build {name} {version} ")
    monkeypatch.setenv("RELEASE_QUEUE_BUILD_TIMEOUT_SECONDS", "120.5")
    monkeypatch.setenv("RELEASE_QUEUE_RUN_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("RELEASE_QUEUE_LOG_LEVEL", "info")
    monkeypatch.setenv("RELEASE_QUEUE_SQLITE_BUSY_TIMEOUT_MS", "250")

    settings = Settings.from_env()

    assert settings.db_path == Path("/var/lib/release-queue/queue.db")
    assert settings.index.path == Path("/srv/index")
    assert settings.index.branch_ref == "refs/remotes/upstream/main"
    assert settings.index.git_timeout_seconds == 45.0
    assert settings.build.command_template == "cratesfyi build {name} {version}"
    assert settings.build.timeout_seconds == 120.5
    assert settings.worker.run_interval_seconds == 5.0
    assert settings.log_level == "INFO"
    assert settings.sqlite_busy_timeout_ms == 250


def test_explicit_paths_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("RELEASE_QUEUE_DB_PATH", "env.db")
    monkeypatch.setenv("RELEASE_QUEUE_INDEX_PATH", "env-index")

    settings = Settings.from_env(db_path=Path("cli.db"), index_path=Path("cli-index"))

    assert settings.db_path == Path("cli.db")
    assert settings.index.path == Path("cli-index")


def test_from_env_rejects_invalid_numbers(monkeypatch) -> None:
    monkeypatch.setenv("RELEASE_QUEUE_BUILD_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ValueError, match="RELEASE_QUEUE_BUILD_TIMEOUT_SECONDS"):
        Settings.from_env()


def test_validate_for_build_requires_command() -> None:
    with pytest.raises(ValueError, match="A build command is required"):
        Settings().validate_for_build()


def test_validate_for_build_requires_placeholders() -> None:
    settings = Settings(build=BuildSettings(command_template="cratesfyi build {name}"))

    with pytest.raises(ValueError, match=r"\{version\}"):
        settings.validate_for_build()


@pytest.mark.parametrize(
    "template",
    [
        "sh -c 'echo {name} {version} {target}'",
        "cratesfyi build {name} {version} '",
        "cratesfyi build {name} {version} {0}",
    ],
)
def test_validate_for_build_rejects_templates_that_cannot_render(template: str) -> None:
    settings = Settings(build=BuildSettings(command_template=template))

    with pytest.raises(ValueError, match="RELEASE_QUEUE_BUILD_COMMAND is unusable"):
        settings.validate_for_build()


def test_validate_for_build_rejects_non_positive_timeout() -> None:
    settings = Settings(
        build=BuildSettings(command_template="build {name} {version}", timeout_seconds=0),
    )

    with pytest.raises(ValueError, match="BUILD_TIMEOUT_SECONDS"):
        settings.validate_for_build()


def test_validate_for_sync_rejects_empty_branch_and_bad_timeout() -> None:
    with pytest.raises(ValueError, match="INDEX_BRANCH"):
        Settings(index=IndexSettings(branch="")).validate_for_sync()
    with pytest.raises(ValueError, match="GIT_TIMEOUT_SECONDS"):
        Settings(index=IndexSettings(git_timeout_seconds=0)).validate_for_sync()


def test_validate_logging_rejects_unknown_level() -> None:
    Settings(log_level="DEBUG").validate_logging()

    with pytest.raises(ValueError, match="RELEASE_QUEUE_LOG_LEVEL"):
        Settings(log_level="CHATTY").validate_logging()
