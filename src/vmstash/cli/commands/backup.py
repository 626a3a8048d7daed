# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/commands/backup.py

"""Backup command: snapshot and stream every configured machine."""

import typer

from vmstash.backup import BackupRunner
from vmstash.cli.common import fail, load_or_exit
from vmstash.clients.restic import ResticClient
from vmstash.errors import VmstashError


def main(ctx: typer.Context):
    """Back up every configured machine into the restic repository."""
    config = load_or_exit(ctx)
    runner = BackupRunner(config, ResticClient(config.restic))
    try:
        run_id = runner.run()
    except VmstashError as e:
        fail("Backup failed", e)
    typer.echo(f"Backup run {run_id} finished")
