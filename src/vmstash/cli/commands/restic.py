# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/commands/restic.py

"""Restic passthrough with the configured repository environment."""

from typing import List

import typer
from loguru import logger

from vmstash.cli.common import fail, load_or_exit
from vmstash.clients.restic import ResticClient
from vmstash.errors import VmstashError


def main(
    ctx: typer.Context,
    args: List[str] = typer.Argument(..., help="Arguments passed to restic, e.g. `init` or `check`"),
):
    """Run restic against the configured repository."""
    config = load_or_exit(ctx)
    logger.info("Running restic command mode")
    try:
        ResticClient(config.restic).run(*args, show_output=True)
    except VmstashError as e:
        fail("restic command failed", e)
