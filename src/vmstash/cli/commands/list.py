# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/commands/list.py

"""List command: backup runs found in the repository."""

from typing import List

import typer

from vmstash.cli.common import fail, load_or_exit
from vmstash.clients.restic import ResticClient
from vmstash.errors import NoBackupsFound, VmstashError
from vmstash.runs import RunCorrelator, RunInfo


def print_runs(runs: List[RunInfo]) -> None:
    typer.secho("Available Backups", bold=True)
    typer.echo()
    for run in runs:
        typer.secho(f"- {run.run_id}", fg=typer.colors.BRIGHT_BLUE)
        typer.secho(f"    {run.time.isoformat(timespec='seconds')}", fg=typer.colors.BRIGHT_GREEN)
    typer.echo()


def main(ctx: typer.Context):
    """List backup runs, newest first."""
    config = load_or_exit(ctx)
    correlator = RunCorrelator(ResticClient(config.restic))
    try:
        runs = correlator.list_runs()
    except NoBackupsFound:
        typer.echo("No backups found")
        raise typer.Exit(code=1)
    except VmstashError as e:
        fail("Failed to list backups", e)
    print_runs(runs)
