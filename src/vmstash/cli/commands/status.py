# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/commands/status.py

"""Status command: repository statistics and the latest run per machine."""

import humanize
import typer

from vmstash.cli.common import fail, load_or_exit
from vmstash.clients.base import RepositoryStats
from vmstash.clients.restic import ResticClient
from vmstash.errors import NoBackupsFound, VmstashError
from vmstash.runs import RunCorrelator, RunSummary


def print_repo_stats(stats: RepositoryStats) -> None:
    typer.secho("Repository Statistics", bold=True)
    typer.echo("  Size: " + typer.style(
        humanize.naturalsize(stats.total_size), fg=typer.colors.BRIGHT_GREEN))
    typer.echo(f"  Uncompressed: {humanize.naturalsize(stats.total_uncompressed_size)}")
    typer.echo(f"  Ratio: {stats.compression_ratio:.2f}x")
    typer.echo(f"  Blobs: {stats.total_blob_count:,}")
    typer.echo(f"  Snapshots: {stats.snapshots_count:,}")
    typer.echo()


def print_machines(summary: RunSummary) -> None:
    typer.secho(f"Backup ID: {summary.run_id}", bold=True)
    typer.echo()
    for group in summary.groups:
        typer.secho(f"- {group.name} ({group.vm_id})", fg=typer.colors.BRIGHT_BLUE)
        if not group.entries:
            typer.echo("    No snapshots")
            continue
        typer.echo("    Most recent: " + typer.style(
            group.latest.isoformat(timespec="seconds"), fg=typer.colors.BRIGHT_GREEN))
        typer.echo("    Source files:")
        for src in group.sources:
            typer.echo(f"      - {src}")
        typer.echo()


def main(ctx: typer.Context):
    """Show repository stats and what the latest run backed up."""
    config = load_or_exit(ctx)
    correlator = RunCorrelator(ResticClient(config.restic))
    try:
        summary = correlator.summarize()
    except NoBackupsFound:
        typer.echo("No backups found")
        raise typer.Exit(code=1)
    except VmstashError as e:
        fail("Failed to read backup status", e)
    print_repo_stats(summary.stats)
    print_machines(summary)
