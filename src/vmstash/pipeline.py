# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/pipeline.py

"""Stream raw disk and config bytes into the archive engine."""

from pathlib import Path
from typing import Callable, Optional, Sequence

import humanize
import typer
from loguru import logger

from vmstash.clients.base import BaseArchiveClient
from vmstash.clients.events import (
    ErrorEvent,
    Event,
    MessageEvent,
    ProgressEvent,
    SummaryEvent,
)
from vmstash.progress import ProgressBar


def _echo_message(message: str) -> None:
    typer.echo(message, err=True)


class EventSink:
    """Turns decoded events into progress output and log lines."""

    def __init__(self, bar: ProgressBar, passthrough: Callable[[str], None]):
        self.bar = bar
        self.passthrough = passthrough
        self.summary: Optional[SummaryEvent] = None
        self.errors: list[str] = []

    def __call__(self, event: Event) -> None:
        if isinstance(event, ProgressEvent):
            self.bar.update(event.bytes_done)
        elif isinstance(event, SummaryEvent):
            self.summary = event
            self.bar.update(event.total_bytes_processed)
        elif isinstance(event, ErrorEvent):
            self.errors.append(event.message)
            logger.error(f"restic: {event.message}")
        elif isinstance(event, MessageEvent):
            self.passthrough(event.message)


class StreamingPipeline:
    """Runs one archive engine stream per disk or config file."""

    def __init__(
        self,
        client: BaseArchiveClient,
        block_size: str = "4M",
        progress: Callable[[Optional[float]], ProgressBar] = ProgressBar,
        passthrough: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.block_size = block_size
        self.progress = progress
        self.passthrough = passthrough or _echo_message

    def _stream(self, source: str, dest_file: str, tags: Sequence[str], total: Optional[float]) -> EventSink:
        bar = self.progress(total)
        sink = EventSink(bar, self.passthrough)
        try:
            self.client.stream_backup(source, dest_file, tags, sink, block_size=self.block_size)
        finally:
            bar.finish()
        if sink.summary is not None:
            logger.info(
                f"Stored {dest_file} as snapshot {sink.summary.snapshot_id} "
                f"({humanize.naturalsize(sink.summary.total_bytes_processed, binary=True)} processed)"
            )
        return sink

    def stream_disk(
        self,
        snapshot_path: Path,
        dest_file: str,
        tags: Sequence[str],
        total_bytes: Optional[float] = None,
    ) -> None:
        """Back up the raw contents of a snapshot device."""
        logger.info(f"Streaming {snapshot_path} to restic as {dest_file}")
        self._stream(str(snapshot_path), dest_file, tags, total_bytes)
        logger.success(f"Disk {snapshot_path} backed up as {dest_file}")

    def stream_config(self, config_path: Path, dest_file: str, tags: Sequence[str]) -> None:
        """Back up a guest config file."""
        logger.info(f"Streaming config {config_path} to restic as {dest_file}")
        try:
            total = float(Path(config_path).stat().st_size)
        except OSError:
            total = None
        self._stream(str(config_path), dest_file, tags, total)
        logger.success(f"Config {config_path} backed up as {dest_file}")
