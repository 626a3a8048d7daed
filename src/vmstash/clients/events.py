# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.18
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/vmstash/clients/events.py

"""Typed records of restic's `--json` output stream."""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

PROGRESS_KINDS = frozenset({"status", "progress", "snapshot"})


class EventDecodeError(ValueError):
    """Raised when a line of the event stream is not a valid record."""


class ProgressEvent(BaseModel):
    kind: str
    bytes_done: float = 0.0
    total_bytes: Optional[float] = None
    percent_done: Optional[float] = None


class SummaryEvent(BaseModel):
    snapshot_id: Optional[str] = None
    total_bytes_processed: float = 0.0
    total_duration: Optional[float] = None


class ErrorEvent(BaseModel):
    message: str


class MessageEvent(BaseModel):
    kind: str
    message: str


Event = Union[ProgressEvent, SummaryEvent, ErrorEvent, MessageEvent]


def _error_message(record: dict[str, Any]) -> str:
    err = record.get("error")
    if isinstance(err, dict) and err.get("message"):
        text = str(err["message"])
    elif isinstance(err, str) and err:
        text = err
    else:
        text = str(record.get("message") or "unknown error")
    item = record.get("item")
    return f"{item}: {text}" if item else text


def decode_record(record: Any) -> Optional[Event]:
    """Map one decoded JSON value onto an Event, or None if it carries nothing."""
    if not isinstance(record, dict):
        raise EventDecodeError(f"expected a JSON object, got {type(record).__name__}")

    kind = str(record.get("message_type", ""))
    try:
        if kind in PROGRESS_KINDS:
            return ProgressEvent(
                kind=kind,
                bytes_done=record.get("bytes_done") or 0,
                total_bytes=record.get("total_bytes"),
                percent_done=record.get("percent_done"),
            )
        if kind == "summary":
            return SummaryEvent.model_validate(record)
    except ValidationError as e:
        raise EventDecodeError(f"bad {kind} record: {e}") from e

    if kind == "error":
        return ErrorEvent(message=_error_message(record))

    message = record.get("message")
    if message:
        return MessageEvent(kind=kind, message=str(message))
    return None


def decode_line(line: str) -> Optional[Event]:
    """Decode one line of the event stream; blank lines yield None."""
    line = line.strip()
    if not line:
        return None
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise EventDecodeError(f"invalid JSON: {e}: {line[:200]}") from e
    return decode_record(record)
