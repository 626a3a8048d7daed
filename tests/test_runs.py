# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# vmstash/tests/test_runs.py

from datetime import date

import pytest

from conftest import FakeArchiveClient, make_entry, ts
from vmstash.clients.base import ArchiveEntry, RepositoryStats
from vmstash.config import Machine, MachineKind
from vmstash.errors import NoBackupsFound
from vmstash.runs import (
    RUN_ID_LENGTH,
    RunCorrelator,
    backup_tags,
    collect_runs,
    group_by_machine,
    new_run_id,
    newest_run_id,
    sources_of,
)


def web_entry(snap_id, run_id, when, src="/dev/pve/data"):
    return make_entry(snap_id, when, id=run_id, vm=7, name="web", type="disk", srcFile=src)


class TestArchiveEntry:

    def test_parses_restic_nanosecond_time(self):
        entry = ArchiveEntry.model_validate({
            "id": "f" * 64,
            "time": "2026-01-02T03:04:05.123456789+01:00",
            "tags": ["id=ab12", "vm=7"],
            "paths": ["/lxc-7/data.raw"],
            "hostname": "pve1",
            "tree": "a" * 64,
        })
        assert entry.time.microsecond == 123456
        assert entry.time.utcoffset().total_seconds() == 3600
        assert entry.tag("vm") == "7"

    def test_missing_tags_and_paths(self):
        entry = ArchiveEntry.model_validate({"id": "x", "time": "2026-01-02T03:04:05Z", "tags": None})
        assert entry.tags == []
        assert entry.tag("id") is None

    def test_first_tag_wins(self):
        entry = make_entry("x", ts(1))
        entry = entry.model_copy(update={"tags": ["id=one", "id=two", "note=a=b"]})
        assert entry.tag("id") == "one"
        assert entry.tag("note") == "a=b"
        assert entry.tag_values("id") == ["one", "two"]


class TestRunIds:

    def test_new_run_id_shape(self):
        ids = {new_run_id() for _ in range(50)}
        assert len(ids) == 50
        for run_id in ids:
            assert len(run_id) == RUN_ID_LENGTH
            assert run_id.isalnum()

    def test_backup_tags(self):
        machine = Machine(id=7, name="web", kind=MachineKind.LXC, disks=("/dev/pve/data",))
        tags = backup_tags("ab12cd34", machine, "disk", "/dev/pve/data", "lxc-7/data.raw",
                           day=date(2026, 10, 18))
        assert tags == [
            "id=ab12cd34",
            "vm=7",
            "name=web",
            "type=disk",
            "vmtype=lxc",
            "date=2026-10-18",
            "srcFile=/dev/pve/data",
            "destFile=lxc-7/data.raw",
        ]


class TestListRuns:

    def test_newest_first_with_max_time_per_run(self):
        entries = [
            web_entry("a1", "old", ts(1, 1)),
            web_entry("a2", "old", ts(1, 5)),
            web_entry("b1", "new", ts(2, 1)),
            make_entry("c1", ts(9), vm=7),  # untagged run, ignored
        ]
        runs = collect_runs(entries)
        assert [(r.run_id, r.time) for r in runs] == [("new", ts(2, 1)), ("old", ts(1, 5))]

    def test_listing_is_idempotent(self):
        client = FakeArchiveClient([
            web_entry("a1", "r1", ts(1)),
            web_entry("b1", "r2", ts(2)),
            web_entry("c1", "r3", ts(3)),
        ])
        correlator = RunCorrelator(client)
        assert correlator.list_runs() == correlator.list_runs()
        assert client.snapshot_calls == 2

    def test_empty_repository(self):
        with pytest.raises(NoBackupsFound):
            RunCorrelator(FakeArchiveClient([])).list_runs()

    def test_no_run_ids(self):
        client = FakeArchiveClient([make_entry("a1", ts(1), vm=7)])
        with pytest.raises(NoBackupsFound):
            RunCorrelator(client).list_runs()


class TestSummarize:

    def test_selects_latest_run(self):
        """Scenario: 3 entries of ab12 and 2 newer entries of cd34."""
        entries = [
            web_entry("a1", "ab12", ts(1, 1)),
            web_entry("a2", "ab12", ts(1, 2)),
            web_entry("a3", "ab12", ts(1, 3)),
            web_entry("c1", "cd34", ts(2, 1), src="/dev/pve/data"),
            web_entry("c2", "cd34", ts(2, 2), src="/etc/pve/lxc/7.conf"),
        ]
        stats = RepositoryStats(total_size=10, snapshots_count=5)
        summary = RunCorrelator(FakeArchiveClient(entries, stats)).summarize()

        assert summary.run_id == "cd34"
        assert summary.stats == stats
        assert len(summary.groups) == 1
        group = summary.groups[0]
        assert (group.vm_id, group.name) == (7, "web")
        assert len(group.entries) == 2
        assert group.latest == ts(2, 2)
        assert group.sources == ["/dev/pve/data", "/etc/pve/lxc/7.conf"]

    def test_one_group_per_machine_of_current_run(self):
        entries = [
            make_entry("q1", ts(1), id="Q", vm=1, name="db"),
            make_entry("r1", ts(2), id="R", vm=1, name="db"),
            make_entry("r2", ts(2, 1), id="R", vm=2, name="mail"),
            make_entry("r3", ts(2, 2), id="R", vm=2, name="mail"),
        ]
        summary = RunCorrelator(FakeArchiveClient(entries)).summarize()
        assert summary.run_id == "R"
        assert [g.vm_id for g in summary.groups] == [1, 2]
        assert [len(g.entries) for g in summary.groups] == [1, 2]

    def test_entries_without_vm_are_dropped(self):
        entries = [
            make_entry("r1", ts(2), id="R", vm=3, name="ok"),
            make_entry("r2", ts(2), id="R", vm="abc", name="bad"),
            make_entry("r3", ts(2), id="R", name="none"),
        ]
        groups = group_by_machine(entries)
        assert [g.vm_id for g in groups] == [3]

    def test_tie_goes_to_last_entry(self):
        entries = [
            make_entry("a", ts(5), id="first"),
            make_entry("b", ts(5), id="second"),
        ]
        assert newest_run_id(entries) == "second"

    def test_newest_entry_without_run_id(self):
        entries = [
            make_entry("a", ts(1), id="tagged"),
            make_entry("b", ts(9), vm=1),
        ]
        assert newest_run_id(entries) is None
        with pytest.raises(NoBackupsFound):
            RunCorrelator(FakeArchiveClient(entries)).summarize()

    def test_no_run_id(self):
        with pytest.raises(NoBackupsFound):
            RunCorrelator(FakeArchiveClient([make_entry("a", ts(1), vm=1)])).summarize()

    def test_sources_distinct_and_sorted(self):
        entries = [
            make_entry("a", ts(1), srcFile="/dev/pve/b"),
            make_entry("b", ts(1), srcFile="/dev/pve/a"),
            make_entry("c", ts(1), srcFile="/dev/pve/b"),
        ]
        assert sources_of(entries) == ["/dev/pve/a", "/dev/pve/b"]
