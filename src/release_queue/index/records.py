"""Extract release records from index diff lines.

The index stores one release per line as a JSON object, for example
``{"name":"serde","vers":"1.0.0","deps":[],"cksum":"...","yanked":false}``.
"""

from __future__ import annotations

import json

from release_queue.queue.models import ReleaseRecord

RECORD_LINE_PREFIX = "{"


class ParseError(ValueError):
    """Candidate index line is not a JSON object."""


def is_record_candidate(content: str) -> bool:
    return content.startswith(RECORD_LINE_PREFIX)


def parse_release_line(content: str) -> ReleaseRecord | None:
    """Parse one index line.

    Returns None when the object lacks a usable ``name`` or ``vers``.
    Raises ParseError when the line is not a JSON object.
    """

    try:
        payload = json.loads(content)
    except json.JSONDecodeError as error:
        raise ParseError(f"Failed to parse release line: {error}") from error
    if not isinstance(payload, dict):
        raise ParseError(f"Release line is not an object: {type(payload).__name__}")

    name = payload.get("name")
    version = payload.get("vers")
    if not isinstance(name, str) or not isinstance(version, str):
        return None
    if not name or not version:
        return None
    return ReleaseRecord(name=name, version=version)
