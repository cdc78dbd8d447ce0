from __future__ import annotations

import shlex
import sys
from pathlib import Path

import allure
import pytest

from release_queue.queue.builder import BuildError, CommandPackageBuilder, render_command_template

pytestmark = [
    allure.epic("Build Queue"),
    allure.feature("Build Command"),
]

_PYTHON = shlex.quote(sys.executable)


def _python_command(code: str) -> str:
    return f"{_PYTHON} -c {shlex.quote(code)} {{name}} {{version}}"


def test_successful_command_receives_name_and_version(tmp_path: Path) -> None:
    marker = tmp_path / "built.txt"
    code = (
        "import pathlib, sys; "
        f"pathlib.Path({str(marker)!r}).write_text(sys.argv[1] + ' ' + sys.argv[2])"
    )
    builder = CommandPackageBuilder(_python_command(code), timeout_seconds=30)

    builder.build("serde", "1.0.197")

    assert marker.read_text() == "serde 1.0.197"


def test_render_quotes_shell_metacharacters() -> None:
    builder = CommandPackageBuilder("cratesfyi build {name} {version}")

    assert builder.render("evil; rm -rf /", "1.0.0 && true") == [
        "cratesfyi",
        "build",
        "evil; rm -rf /",
        "1.0.0 && true",
    ]


def test_non_zero_exit_raises_build_error_with_stderr() -> None:
    code = "import sys; sys.stderr.write('rustdoc exploded'); sys.exit(3)"
    builder = CommandPackageBuilder(_python_command(code), timeout_seconds=30)

    with pytest.raises(BuildError, match="rustdoc exploded") as error:
        builder.build("foo", "1.0.0")

    assert error.value.exit_code == 3


def test_timeout_raises_build_error() -> None:
    builder = CommandPackageBuilder(
        _python_command("import time; time.sleep(10)"),
        timeout_seconds=0.5,
    )

    with pytest.raises(BuildError, match="timed out"):
        builder.build("slow", "1.0.0")


def test_missing_executable_raises_build_error() -> None:
    builder = CommandPackageBuilder("definitely-not-a-real-builder-xyz {name} {version}")

    with pytest.raises(BuildError, match="not found"):
        builder.build("foo", "1.0.0")


@pytest.mark.parametrize(
    ("template", "message"),
    [
        ("", "empty"),
        ("   ", "empty"),
        ("build {version}", r"\{name\}"),
        ("build {name}", r"\{version\}"),
        ("sh -c 'echo {name} {version} {target}'", "Unknown placeholder"),
        ("cratesfyi build {name} {version} '", "not valid shell syntax"),
        ("cratesfyi build {name} {version} {0}", "Invalid build command template"),
    ],
)
def test_invalid_templates_are_rejected(template: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        CommandPackageBuilder(template)


def test_broken_template_raises_build_error_not_raw_exception() -> None:
    builder = CommandPackageBuilder("cratesfyi build {name} {version}")
    builder.command_template = "cratesfyi build {name} {version} {target}"

    with pytest.raises(BuildError, match="Unknown placeholder"):
        builder.build("foo", "1.0.0")


def test_template_rendering_to_empty_argv_is_rejected() -> None:
    with pytest.raises(BuildError, match="empty command line"):
        render_command_template("   ", name="foo", version="1.0.0")
