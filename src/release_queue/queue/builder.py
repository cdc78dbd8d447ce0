"""Build capability invoked by the queue worker."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2_000


class BuildError(RuntimeError):
    """Package build did not succeed."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class PackageBuilder(Protocol):
    """Protocol implemented by build runners.

    Building a release that was already built must be safe: an entry whose
    removal failed is built again on the next drain.
    """

    def build(self, name: str, version: str) -> None:
        """Build one release or raise BuildError."""


def render_command_template(template: str, *, name: str, version: str) -> list[str]:
    """Expand ``{name}``/``{version}`` shell-quoted and split into argv."""

    try:
        rendered = template.format(name=shlex.quote(name), version=shlex.quote(version))
    except KeyError as error:
        raise BuildError(f"Unknown placeholder in build command template: {error}") from error
    except (IndexError, ValueError) as error:
        raise BuildError(f"Invalid build command template: {error}") from error
    try:
        run_args = shlex.split(rendered)
    except ValueError as error:
        raise BuildError(f"Build command is not valid shell syntax: {error}") from error
    if not run_args:
        raise BuildError("Build command rendered to an empty command line.")
    return run_args


def check_command_template(template: str) -> str:
    """Return the stripped template or raise ValueError if it cannot render."""

    stripped = template.strip()
    if not stripped:
        raise ValueError("Build command template is empty.")
    for placeholder in ("{name}", "{version}"):
        if placeholder not in stripped:
            raise ValueError(f"Build command template must include {placeholder}.")
    try:
        render_command_template(stripped, name="name", version="0.0.0")
    except BuildError as error:
        raise ValueError(str(error)) from error
    return stripped


class CommandPackageBuilder:
    """Run a shell command template such as ``cratesfyi build {name} {version}``."""

    def __init__(
        self,
        command_template: str,
        *,
        timeout_seconds: float = 3600,
        workdir: Path | None = None,
    ) -> None:
        self.command_template = check_command_template(command_template)
        self.timeout_seconds = timeout_seconds
        self.workdir = workdir

    def render(self, name: str, version: str) -> list[str]:
        return render_command_template(self.command_template, name=name, version=version)

    def build(self, name: str, version: str) -> None:
        run_args = self.render(name, version)
        logger.info("Building %s-%s", name, version)
        try:
            completed = subprocess.run(  # noqa: S603
                run_args,
                cwd=self.workdir,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise BuildError(f"Build command not found: {run_args[0]}") from error
        except subprocess.TimeoutExpired as error:
            raise BuildError(
                f"Build of {name}-{version} timed out after {self.timeout_seconds}s",
            ) from error
        except OSError as error:
            raise BuildError(f"Build command failed to start: {error}") from error

        if completed.returncode != 0:
            stderr_tail = (completed.stderr or "").strip()[-_STDERR_TAIL_CHARS:]
            raise BuildError(
                f"Build of {name}-{version} exited with code {completed.returncode}: "
                f"{stderr_tail or '<no stderr>'}",
                exit_code=completed.returncode,
            )
