# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/backup.py

"""Top-level backup run: every disk and config of every machine."""

from typing import Optional

from loguru import logger

from vmstash.clients.base import BaseArchiveClient
from vmstash.config import Config, Machine
from vmstash.errors import BackupError, EngineError, PreflightError, VmstashError
from vmstash.lvm import LvmProvider, volume_name
from vmstash.pipeline import StreamingPipeline
from vmstash.preflight import has_sufficient_space
from vmstash.runs import backup_tags, new_run_id
from vmstash.snapshot import SnapshotManager


class BackupRunner:
    """Backs up machines one disk at a time, stopping at the first failure."""

    def __init__(
        self,
        config: Config,
        client: BaseArchiveClient,
        provider: Optional[LvmProvider] = None,
        pipeline: Optional[StreamingPipeline] = None,
    ):
        self.config = config
        self.client = client
        self.provider = provider or LvmProvider()
        self.snapshots = SnapshotManager(self.provider, size=config.snapshot.size)
        self.pipeline = pipeline or StreamingPipeline(client, block_size=config.snapshot.block_size)

    def check_engine(self) -> None:
        logger.info("Checking restic repository")
        try:
            self.client.check()
        except EngineError as e:
            raise EngineError(
                f"restic repository unreachable or misconfigured, maybe it needs `restic init`: {e}"
            ) from e

    def preflight(self) -> None:
        destination = self.config.preflight_destination()
        if destination is None:
            logger.info("Repository is remote, skipping free space check")
            return
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PreflightError(f"Cannot create {destination}: {e}") from e
        if not has_sufficient_space(destination, self.config.machines, self.provider):
            raise PreflightError(f"Not enough free space at {destination}")

    def run(self) -> str:
        """Back up every configured machine and return the run id."""
        self.check_engine()
        self.preflight()

        run_id = new_run_id()
        logger.info(f"Starting backup run {run_id} for {len(self.config.machines)} machines")
        for machine in self.config.machines:
            self.backup_machine(machine, run_id)
        logger.success(f"Backup run {run_id} completed successfully")
        return run_id

    def backup_machine(self, machine: Machine, run_id: str) -> None:
        logger.info(f"Start backup of {machine.label} ({machine.name})")
        for disk in machine.disks:
            self.backup_disk(machine, disk, run_id)
        self.backup_config(machine, run_id)

    def _disk_total(self, disk: str) -> int:
        size = self.provider.volume_size(disk)
        if size is None or size <= 0:
            logger.warning(f"Size of {disk} unknown, showing progress against snapshot size")
            return self.config.snapshot.size_bytes
        return size

    def backup_disk(self, machine: Machine, disk: str, run_id: str) -> None:
        dest_file = f"{machine.label}/{volume_name(disk)}.raw"
        tags = backup_tags(run_id, machine, "disk", disk, dest_file)
        total = self._disk_total(disk)
        try:
            with self.snapshots.snapshot(disk) as snap:
                self.pipeline.stream_disk(snap, dest_file, tags, total_bytes=total)
        except VmstashError as e:
            raise BackupError(machine.id, disk, "disk backup", e) from e

    def backup_config(self, machine: Machine, run_id: str) -> None:
        src = machine.config_path(self.config.pve_config_root)
        if not src.exists():
            logger.warning(f"Config file {src} not found, skipping")
            return
        dest_file = f"{machine.label}/config"
        tags = backup_tags(run_id, machine, "config", str(src), dest_file)
        try:
            self.pipeline.stream_config(src, dest_file, tags)
        except VmstashError as e:
            raise BackupError(machine.id, str(src), "config backup", e) from e
