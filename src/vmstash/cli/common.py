# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/cli/common.py

"""Helpers shared by the CLI commands."""

from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from loguru import logger

from vmstash.config import Config, load_config
from vmstash.errors import VmstashError


@dataclass(frozen=True)
class CliState:
    config_path: Path


def load_or_exit(ctx: typer.Context) -> Config:
    """Load the config named on the command line or exit non-zero."""
    state: CliState = ctx.obj
    try:
        return load_config(state.config_path)
    except VmstashError as e:
        logger.error(f"Failed to load config: {e}")
        raise typer.Exit(code=1)


def fail(message: str, error: Exception) -> NoReturn:
    logger.error(f"{message}: {error}")
    raise typer.Exit(code=1)
