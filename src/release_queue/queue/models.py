"""Domain models for the build queue."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """One newly observed package release."""

    name: str
    version: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Release name must be non-empty.")
        if not self.version:
            raise ValueError("Release version must be non-empty.")


@dataclass(slots=True)
class QueueEntry:
    """Pending build queue row."""

    id: int
    name: str
    version: str
    created_at: datetime

    @property
    def release(self) -> ReleaseRecord:
        return ReleaseRecord(name=self.name, version=self.version)
