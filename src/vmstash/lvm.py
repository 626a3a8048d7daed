# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/lvm.py

"""Thin wrapper around the LVM command line tools."""

import subprocess
from pathlib import Path
from typing import Dict, Iterable, Optional

from loguru import logger

from vmstash.errors import SnapshotError

SNAPSHOT_SUFFIX = "-snap"

# lvcreate size suffixes are binary units
_UNITS = {"b": 1, "s": 512, "k": 1024, "m": 1024 ** 2, "g": 1024 ** 3, "t": 1024 ** 4, "p": 1024 ** 5}


def parse_size(size: str) -> int:
    """Bytes in an LVM size string such as `5G` or `512m`; bare numbers are MiB."""
    text = size.strip().lower()
    if text and text[-1] in _UNITS:
        number, unit = text[:-1], _UNITS[text[-1]]
    else:
        number, unit = text, _UNITS["m"]
    try:
        return int(float(number) * unit)
    except ValueError:
        raise ValueError(f"Invalid LVM size: {size!r}") from None


def volume_name(disk: str) -> str:
    """Logical volume name of a disk path: its last path segment."""
    return Path(disk).name


def snapshot_name(disk: str) -> str:
    return volume_name(disk) + SNAPSHOT_SUFFIX


def snapshot_path(disk: str) -> Path:
    """Device path of the disk's snapshot, in the same volume group directory."""
    return Path(disk).parent / snapshot_name(disk)


def parse_lvs_sizes(output: str) -> Dict[str, int]:
    """Parse `lvs --noheadings --units b --nosuffix -o lv_name,lv_size` output."""
    sizes: Dict[str, int] = {}
    for line in output.splitlines():
        fields = line.split()
        if len(fields) != 2:
            continue
        name, size = fields
        try:
            sizes[name] = int(float(size))
        except ValueError:
            logger.warning(f"Cannot parse size {size!r} for LV {name}")
            continue
    return sizes


class LvmProvider:
    """Creates, removes and measures logical volumes via lvcreate/lvremove/lvs."""

    LVS_ARGS = ["--noheadings", "--units", "b", "--nosuffix"]

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, text=True, capture_output=True)
        except OSError as e:
            raise SnapshotError(f"Cannot run {cmd[0]}: {e}") from e

    def exists(self, device: Path) -> bool:
        return Path(device).exists()

    def create(self, disk: str, name: str, size: str) -> None:
        result = self._run(["lvcreate", "-s", "-n", name, "-L", size, disk])
        if result.returncode != 0:
            raise SnapshotError(
                f"Failed to create snapshot {name} for {disk}",
                result.stdout + result.stderr,
            )

    def remove(self, device: Path) -> None:
        result = self._run(["lvremove", "-f", str(device)])
        if result.returncode != 0:
            raise SnapshotError(
                f"Failed to remove snapshot {device}",
                result.stdout + result.stderr,
            )

    def volume_sizes(self, devices: Optional[Iterable[str]] = None) -> Dict[str, int]:
        """Map of LV name to size in bytes; all LVs when `devices` is None."""
        cmd = ["lvs", *self.LVS_ARGS, "-o", "lv_name,lv_size"]
        if devices:
            cmd.extend(str(d) for d in devices)
        result = self._run(cmd)
        if result.returncode != 0:
            raise SnapshotError("Failed to run lvs", result.stdout + result.stderr)
        return parse_lvs_sizes(result.stdout)

    def volume_size(self, disk: str) -> Optional[int]:
        """Size of one LV in bytes, or None if it cannot be resolved."""
        try:
            sizes = self.volume_sizes([disk])
        except SnapshotError as e:
            logger.warning(f"Cannot query size of {disk}: {e}")
            return None
        return sizes.get(volume_name(disk))
