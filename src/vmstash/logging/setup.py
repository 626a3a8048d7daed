# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/logging/setup.py

"""Loguru configuration shared by all commands."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}"
DEFAULT_LOG_FILE = Path("/tmp/vmstash.log")


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure loguru for console output and an optional log file."""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), format=LOG_FORMAT, level=level, mode="a", encoding="utf-8")
        logger.debug(f"Logging to {log_file}")
