# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/runs.py

"""Reconstruct backup runs and per-machine groups from snapshot tags.

Every archive entry written by one `backup` invocation carries the same
`id=<run id>` tag, plus `vm=`, `name=`, `srcFile=` and friends. The
repository's snapshot list is the only record of what happened, so all
grouping here is derived from those tags.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from loguru import logger

from vmstash.clients.base import ArchiveEntry, BaseArchiveClient, RepositoryStats
from vmstash.config import Machine
from vmstash.errors import NoBackupsFound

RUN_ID_LENGTH = 8


def new_run_id() -> str:
    """Random identifier shared by every entry of one backup run."""
    return uuid.uuid4().hex[:RUN_ID_LENGTH]


def backup_tags(
    run_id: str,
    machine: Machine,
    entry_type: str,
    src_file: str,
    dest_file: str,
    day: Optional[date] = None,
) -> List[str]:
    """The `key=value` tags attached to one archive entry."""
    day = day or date.today()
    return [
        f"id={run_id}",
        f"vm={machine.id}",
        f"name={machine.name}",
        f"type={entry_type}",
        f"vmtype={machine.kind.value}",
        f"date={day.isoformat()}",
        f"srcFile={src_file}",
        f"destFile={dest_file}",
    ]


@dataclass(frozen=True)
class RunInfo:
    run_id: str
    time: datetime


@dataclass
class MachineGroup:
    vm_id: int
    name: str
    entries: List[ArchiveEntry] = field(default_factory=list)

    @property
    def latest(self) -> Optional[datetime]:
        return max((e.time for e in self.entries), default=None)

    @property
    def sources(self) -> List[str]:
        return sources_of(self.entries)


@dataclass
class RunSummary:
    run_id: str
    stats: RepositoryStats
    groups: List[MachineGroup]


def collect_runs(entries: Sequence[ArchiveEntry]) -> List[RunInfo]:
    """One row per run id with its newest timestamp, newest run first."""
    newest: Dict[str, datetime] = {}
    for entry in entries:
        run_id = entry.tag("id")
        if not run_id:
            continue
        if run_id not in newest or entry.time > newest[run_id]:
            newest[run_id] = entry.time
    runs = [RunInfo(run_id=k, time=v) for k, v in newest.items()]
    runs.sort(key=lambda r: r.time, reverse=True)
    return runs


def newest_run_id(entries: Sequence[ArchiveEntry]) -> Optional[str]:
    """Run id of the most recent entry overall; on a tie the later entry wins.

    None when that entry carries no `id` tag.
    """
    best: Optional[ArchiveEntry] = None
    for entry in entries:
        if best is None or entry.time >= best.time:
            best = entry
    return best.tag("id") if best else None


def filter_by_run(entries: Sequence[ArchiveEntry], run_id: str) -> List[ArchiveEntry]:
    match = f"id={run_id}"
    return [e for e in entries if match in e.tags]


def group_by_machine(entries: Sequence[ArchiveEntry]) -> List[MachineGroup]:
    """Group entries by their `vm` tag, ordered by machine id."""
    groups: Dict[int, MachineGroup] = {}
    for entry in entries:
        raw = entry.tag("vm")
        try:
            vm_id = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Snapshot {entry.short_id or entry.id} has no usable vm tag ({raw!r}), skipping")
            continue
        group = groups.get(vm_id)
        if group is None:
            group = groups[vm_id] = MachineGroup(vm_id=vm_id, name=entry.tag("name") or "")
        elif not group.name:
            group.name = entry.tag("name") or ""
        group.entries.append(entry)
    return [groups[k] for k in sorted(groups)]


def sources_of(entries: Sequence[ArchiveEntry]) -> List[str]:
    """Distinct, sorted `srcFile` tag values."""
    return sorted({src for e in entries for src in e.tag_values("srcFile")})


class RunCorrelator:
    """Read-only view of backup runs held in the repository."""

    def __init__(self, client: BaseArchiveClient):
        self.client = client

    def list_runs(self) -> List[RunInfo]:
        entries = self.client.snapshots()
        runs = collect_runs(entries)
        if not runs:
            raise NoBackupsFound()
        logger.debug(f"Found {len(runs)} runs in {len(entries)} snapshots")
        return runs

    def summarize(self) -> RunSummary:
        stats = self.client.stats()
        entries = self.client.snapshots()
        run_id = newest_run_id(entries)
        if run_id is None:
            raise NoBackupsFound("no backup run id found")
        groups = group_by_machine(filter_by_run(entries, run_id))
        return RunSummary(run_id=run_id, stats=stats, groups=groups)
