# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/preflight.py

"""Free-space check run before any snapshot is taken."""

from pathlib import Path
from typing import Sequence

import humanize
import psutil
from loguru import logger

from vmstash.config import Machine
from vmstash.errors import PreflightError, SnapshotError
from vmstash.lvm import LvmProvider, volume_name


def required_bytes(machines: Sequence[Machine], sizes: dict[str, int]) -> int:
    """Sum of the LV sizes of every configured disk; unknown disks are skipped."""
    total = 0
    for machine in machines:
        for disk in machine.disks:
            size = sizes.get(volume_name(disk))
            if size is None:
                logger.warning(f"Disk {disk} of machine {machine.id} not found in LVM, skipping")
                continue
            total += size
    return total


def available_bytes(destination: Path) -> int:
    """Bytes available to unprivileged users at `destination`."""
    try:
        return psutil.disk_usage(str(destination)).free
    except OSError as e:
        raise PreflightError(f"Cannot read filesystem stats for {destination}: {e}") from e


def has_sufficient_space(
    destination: Path, machines: Sequence[Machine], provider: LvmProvider
) -> bool:
    """True when the destination can hold every configured disk."""
    try:
        sizes = provider.volume_sizes()
    except SnapshotError as e:
        raise PreflightError(f"Cannot query logical volume sizes: {e}") from e

    required = required_bytes(machines, sizes)
    available = available_bytes(destination)

    logger.info(f"Available space: {humanize.naturalsize(available, binary=True)}")
    logger.info(f"Required space for all machines: {humanize.naturalsize(required, binary=True)}")

    if available < required:
        logger.warning(
            f"Insufficient space at {destination}: need "
            f"{humanize.naturalsize(required, binary=True)}, only "
            f"{humanize.naturalsize(available, binary=True)} available"
        )
        return False
    return True
