# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/main.py

"""Main CLI entry point for vmstash."""

import typer
from pathlib import Path

from vmstash.cli.commands.backup import main as backup_command
from vmstash.cli.commands.list import main as list_command
from vmstash.cli.commands.restic import main as restic_command
from vmstash.cli.commands.status import main as status_command
from vmstash.cli.common import CliState
from vmstash.config import DEFAULT_CONFIG_PATH
from vmstash.logging.setup import DEFAULT_LOG_FILE, setup_logging

app = typer.Typer(
    name="vmstash",
    help="Snapshot Proxmox guest disks and stream them into a restic repository",
    no_args_is_help=True,
)

app.command("backup", help="Back up every configured machine")(backup_command)
app.command("list", help="List backup runs, newest first")(list_command)
app.command("status", help="Show repository stats and the latest run per machine")(status_command)
app.command(
    "restic",
    help="Run a restic command against the configured repository",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(restic_command)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config file"),
    log_file: Path = typer.Option(DEFAULT_LOG_FILE, "--log-file", help="Append log output to this file"),
):
    """vmstash: LVM snapshot backups into restic."""
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.obj = CliState(config_path=config)


if __name__ == "__main__":
    app()
