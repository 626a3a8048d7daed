# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# vmstash/tests/conftest.py

import json
import stat
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

from vmstash.clients.base import ArchiveEntry, BaseArchiveClient, RepositoryStats
from vmstash.errors import SnapshotError
from vmstash.lvm import LvmProvider

GIB = 1024 ** 3


class FakeLvm(LvmProvider):
    """In-memory LVM: tracks live snapshot devices instead of running lvcreate."""

    def __init__(self, sizes=None, live=None, fail_create=False, fail_remove=False, fail_lvs=False):
        self.sizes = dict(sizes or {})
        self.live = set(Path(p) for p in (live or ()))
        self.fail_create = fail_create
        self.fail_remove = fail_remove
        self.fail_lvs = fail_lvs
        self.log = []

    def exists(self, device):
        return Path(device) in self.live

    def create(self, disk, name, size):
        path = Path(disk).parent / name
        self.log.append(("create", str(path), size))
        if self.fail_create:
            raise SnapshotError(f"Failed to create snapshot {name} for {disk}")
        if path in self.live:
            raise SnapshotError(f'Logical Volume "{name}" already exists')
        self.live.add(path)

    def remove(self, device):
        self.log.append(("remove", str(device)))
        if self.fail_remove:
            raise SnapshotError(f"Failed to remove snapshot {device}", "device busy")
        self.live.discard(Path(device))

    def volume_sizes(self, devices=None):
        if self.fail_lvs:
            raise SnapshotError("Failed to run lvs")
        if devices is None:
            return dict(self.sizes)
        names = {Path(d).name for d in devices}
        return {k: v for k, v in self.sizes.items() if k in names}


class FakeArchiveClient(BaseArchiveClient):
    """Archive client serving a fixed snapshot list."""

    def __init__(self, entries=(), stats=None):
        self.entries = list(entries)
        self.repo_stats = stats or RepositoryStats()
        self.snapshot_calls = 0

    def check(self):
        pass

    def stream_backup(self, source, dest_file, tags, handler, block_size="4M"):
        raise NotImplementedError

    def snapshots(self):
        self.snapshot_calls += 1
        return list(self.entries)

    def stats(self):
        return self.repo_stats


def make_entry(snap_id, when, **tags):
    """ArchiveEntry with `key=value` tags built from keyword arguments."""
    return ArchiveEntry(
        id=snap_id,
        short_id=snap_id[:8],
        time=when,
        tags=[f"{k}={v}" for k, v in tags.items()],
        paths=[f"/{tags.get('destFile', 'stdin')}"],
        hostname="pve1",
        tree="0" * 64,
    )


def ts(day, hour=0, minute=0):
    return datetime(2026, 1, day, hour, minute, tzinfo=timezone.utc)


FAKE_RESTIC = """#!{python}
import json
import sys
from pathlib import Path

here = Path(__file__).parent
plan = json.loads((here / "plan.json").read_text())
calls = here / "calls.jsonl"
args = sys.argv[1:]
verb = args[0] if args else ""

previous = []
if calls.exists():
    previous = [json.loads(l) for l in calls.read_text().splitlines() if l.strip()]
with calls.open("a") as f:
    f.write(json.dumps(args) + "\\n")

if verb == "cat":
    sys.exit(plan.get("check_rc", 0))
if verb == "snapshots":
    print(json.dumps(plan.get("snapshots", [])))
    sys.exit(0)
if verb == "stats":
    print(json.dumps(plan.get("stats", {{}})))
    sys.exit(0)
if verb == "backup":
    runs = plan.get("backups") or [{{}}]
    n = sum(1 for c in previous if c and c[0] == "backup")
    run = runs[min(n, len(runs) - 1)]
    for line in run.get("raw_stderr", []):
        sys.stderr.buffer.write(line.encode("latin-1"))
    sys.stderr.buffer.flush()
    for _ in range(run.get("stderr_fill", 0)):
        sys.stderr.write("x" * 99 + "\\n")
    sys.stderr.flush()
    for line in run.get("stderr", []):
        print(line, file=sys.stderr, flush=True)
    for event in run.get("events", []):
        print(event if isinstance(event, str) else json.dumps(event), flush=True)
    for line in run.get("raw_events", []):
        sys.stdout.buffer.write(line.encode("latin-1"))
    sys.stdout.buffer.flush()
    sys.exit(run.get("rc", 0))
sys.exit(plan.get("rc", 0))
"""


class FakeRestic:
    """An executable stand-in for restic driven by a JSON plan."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.binary = root / "restic"
        self.binary.write_text(FAKE_RESTIC.format(python=sys.executable))
        self.binary.chmod(self.binary.stat().st_mode | stat.S_IEXEC)
        self.plan({})

    def plan(self, plan: dict) -> None:
        (self.root / "plan.json").write_text(json.dumps(plan))

    @property
    def calls(self):
        path = self.root / "calls.jsonl"
        if not path.exists():
            return []
        return [json.loads(l) for l in path.read_text().splitlines() if l.strip()]

    def backup_calls(self):
        return [c for c in self.calls if c and c[0] == "backup"]


def tags_of(call):
    """`--tag` values of a recorded restic invocation."""
    return [call[i + 1] for i, a in enumerate(call) if a == "--tag"]


@pytest.fixture
def fake_restic(tmp_path):
    return FakeRestic(tmp_path / "bin")
