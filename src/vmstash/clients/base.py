# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/clients/base.py

"""Base archive client interface and the records it returns."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from vmstash.clients.events import Event

# restic prints nanoseconds; datetime only holds microseconds
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class ArchiveEntry(BaseModel):
    """A snapshot as recorded by the archive engine."""
    id: str
    short_id: Optional[str] = None
    time: datetime
    tags: List[str] = Field(default_factory=list)
    paths: List[str] = Field(default_factory=list)
    hostname: str = ""
    tree: str = ""

    @field_validator("time", mode="before")
    @classmethod
    def _truncate_fraction(cls, value):
        if isinstance(value, str):
            return _FRACTION_RE.sub(r"\1", value, count=1)
        return value

    @field_validator("tags", "paths", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return value or []

    def tag(self, key: str) -> Optional[str]:
        """Value of the first `key=value` tag, or None."""
        prefix = f"{key}="
        for t in self.tags:
            if t.startswith(prefix):
                return t[len(prefix):]
        return None

    def tag_values(self, key: str) -> List[str]:
        prefix = f"{key}="
        return [t[len(prefix):] for t in self.tags if t.startswith(prefix)]


class RepositoryStats(BaseModel):
    total_size: int = 0
    total_uncompressed_size: int = 0
    compression_ratio: float = 0.0
    compression_progress: float = 0.0
    compression_space_saving: float = 0.0
    total_blob_count: int = 0
    snapshots_count: int = 0


EventHandler = Callable[[Event], None]


class BaseArchiveClient(ABC):
    """Abstract base class for archive engine clients."""

    @abstractmethod
    def check(self) -> None:
        """Raise if the repository is unreachable or misconfigured."""

    @abstractmethod
    def stream_backup(
        self,
        source: str,
        dest_file: str,
        tags: Sequence[str],
        handler: EventHandler,
        block_size: str = "4M",
    ) -> None:
        """Back up the raw bytes of `source` as `dest_file`, feeding events to `handler`."""

    @abstractmethod
    def snapshots(self) -> List[ArchiveEntry]:
        """Return the full snapshot list."""

    @abstractmethod
    def stats(self) -> RepositoryStats:
        """Return aggregate repository statistics."""
