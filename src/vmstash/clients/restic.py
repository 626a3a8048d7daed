# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/clients/restic.py

"""restic client: plain commands, JSON queries and streaming backups."""

import json
import os
import subprocess
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import typer
from loguru import logger
from pydantic import TypeAdapter, ValidationError

from vmstash.clients.base import (
    ArchiveEntry,
    BaseArchiveClient,
    EventHandler,
    RepositoryStats,
)
from vmstash.clients.events import ErrorEvent, EventDecodeError, decode_line
from vmstash.config import ResticConfig
from vmstash.errors import EngineError, StreamError

# stderr chatter that adds nothing during a streaming backup
NOISY_PREFIXES = ("subprocess /bin/dd:",)
NOISY_FRAGMENTS = ("using parent snapshot", "old cache directories")

_ENTRIES = TypeAdapter(List[ArchiveEntry])


def is_noise(line: str) -> bool:
    return line.startswith(NOISY_PREFIXES) or any(f in line for f in NOISY_FRAGMENTS)


def _echo_diagnostic(line: str) -> None:
    typer.echo(line, err=True)


class ResticClient(BaseArchiveClient):
    """Runs the restic binary with the repository environment from config."""

    def __init__(
        self,
        config: ResticConfig,
        diagnostics: Callable[[str], None] = _echo_diagnostic,
    ):
        self.config = config
        self.diagnostics = diagnostics

    def _command(self, args: Iterable[str]) -> List[str]:
        cmd = [self.config.binary, *args]
        logger.debug(f"Running restic command: {' '.join(cmd)}")
        return cmd

    def _env(self, **extra: str) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(self.config.environment())
        env.update(extra)
        return env

    def run(self, *args: str, show_output: bool = False) -> None:
        """Run a restic command; success means a zero exit status."""
        cmd = self._command(args)
        try:
            if show_output:
                result = subprocess.run(cmd, env=self._env())
            else:
                result = subprocess.run(
                    cmd, env=self._env(), encoding="utf-8", errors="replace", capture_output=True)
        except OSError as e:
            raise EngineError(f"Cannot run restic binary {self.config.binary}: {e}") from e
        if result.returncode != 0:
            raise EngineError(
                f"restic {args[0] if args else ''} failed",
                returncode=result.returncode,
                stderr=result.stderr or "",
            )

    def output(self, *args: str) -> str:
        """Run a restic command and return its stdout."""
        cmd = self._command(args)
        try:
            result = subprocess.run(
                cmd, env=self._env(), encoding="utf-8", errors="replace", capture_output=True)
        except OSError as e:
            raise EngineError(f"Cannot run restic binary {self.config.binary}: {e}") from e
        if result.returncode != 0:
            raise EngineError(
                f"restic {args[0] if args else ''} failed",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout

    def check(self) -> None:
        self.run("cat", "config")

    def snapshots(self) -> List[ArchiveEntry]:
        out = self.output("snapshots", "--json")
        try:
            return _ENTRIES.validate_python(json.loads(out) or [])
        except (json.JSONDecodeError, ValidationError) as e:
            raise EngineError(f"Cannot parse restic snapshot list: {e}") from e

    def stats(self) -> RepositoryStats:
        out = self.output("stats", "--mode", "raw-data", "--json")
        try:
            return RepositoryStats.model_validate_json(out)
        except ValidationError as e:
            raise EngineError(f"Cannot parse restic stats: {e}") from e

    def stream_backup(
        self,
        source: str,
        dest_file: str,
        tags: Sequence[str],
        handler: EventHandler,
        block_size: str = "4M",
    ) -> None:
        args = ["backup", "--stdin-from-command", "--stdin-filename", dest_file]
        for tag in tags:
            args.extend(["--tag", tag])
        args.extend(["--json", "--", "dd", f"if={source}", f"bs={block_size}", "status=none"])
        self.stream_json(args, handler)

    def stream_json(self, args: Sequence[str], handler: EventHandler) -> None:
        """Run restic with `--json`, feeding decoded events to `handler`.

        stdout is decoded on the calling thread while stderr is drained on
        a second thread, so neither channel can stall the other. The exit
        status is collected only after both reach end-of-stream.
        """
        if "--json" not in args:
            raise ValueError("restic JSON stream requires the --json argument")

        cmd = self._command(args)
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                env=self._env(RESTIC_PROGRESS_FPS="1"),
            )
        except OSError as e:
            raise EngineError(f"Cannot run restic binary {self.config.binary}: {e}") from e

        with proc:
            drain = threading.Thread(
                target=self._drain_diagnostics,
                args=(proc.stderr,),
                name="restic-stderr",
                daemon=True,
            )
            drain.start()

            try:
                last_error = self._read_events(proc.stdout, handler)
            except (EventDecodeError, UnicodeDecodeError) as e:
                self._abort(proc, drain)
                raise StreamError("restic output could not be decoded", last_error=str(e)) from e
            except BaseException:
                self._abort(proc, drain)
                raise

            drain.join()
            returncode = proc.wait()

        if returncode != 0:
            raise StreamError("restic backup failed", returncode=returncode, last_error=last_error)

    def _read_events(self, stream, handler: EventHandler) -> Optional[str]:
        last_error = None
        for line in stream:
            event = decode_line(line)
            if event is None:
                continue
            if isinstance(event, ErrorEvent):
                last_error = event.message
            handler(event)
        return last_error

    def _drain_diagnostics(self, stream) -> None:
        for line in stream:
            line = line.rstrip("\n")
            if not line or is_noise(line):
                continue
            self.diagnostics(line)

    @staticmethod
    def _abort(proc: subprocess.Popen, drain: threading.Thread) -> None:
        proc.kill()
        proc.wait()
        drain.join()
