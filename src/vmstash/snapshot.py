# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/snapshot.py

"""Copy-on-write snapshot lifecycle for a single disk."""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

from vmstash.errors import SnapshotError
from vmstash.lvm import LvmProvider, snapshot_name, snapshot_path


class SnapshotManager:
    """Owns the create -> use -> remove sequence of one disk's snapshot.

    Only one snapshot per logical volume is expected at a time. A snapshot
    found at acquire time is debris from an earlier, interrupted run and
    is removed before the new one is created.
    """

    def __init__(self, provider: LvmProvider, size: str = "5G"):
        self.provider = provider
        self.size = size

    def acquire(self, disk: str) -> Path:
        """Create a fresh snapshot of `disk` and return its device path."""
        path = snapshot_path(disk)
        if self.provider.exists(path):
            logger.warning(f"Stale snapshot {path} found, removing it")
            try:
                self.provider.remove(path)
            except SnapshotError as e:
                logger.warning(f"Could not remove stale snapshot {path}: {e}")

        self.provider.create(disk, snapshot_name(disk), self.size)
        logger.info(f"Created snapshot {path} for {disk} ({self.size} headroom)")
        return path

    def release(self, path: Path) -> None:
        self.provider.remove(path)
        logger.info(f"Snapshot {path} removed")

    @contextmanager
    def snapshot(self, disk: str) -> Iterator[Path]:
        """Scoped snapshot: released exactly once on every exit path.

        If the body raises, a failing release is logged and attached to
        the body's exception instead of replacing it.
        """
        path = self.acquire(disk)
        try:
            yield path
        except BaseException as exc:
            try:
                self.release(path)
            except SnapshotError as cleanup_exc:
                logger.error(f"Cleanup of {path} failed after error: {cleanup_exc}")
                exc.add_note(f"snapshot cleanup also failed: {cleanup_exc}")
                exc.cleanup_error = cleanup_exc
            raise
        self.release(path)
