"""Trace levels and log line formatting for the LSP client.

Lines follow the format editors use for language client output, e.g.::

    [Trace - 10:15:32 AM] Sending request 'initialize - (1)'.
    [Info  - 10:15:32 AM] Hello World!
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class Trace(Enum):
    """Protocol trace verbosity (the LSP ``TraceValue``)."""

    OFF = "off"
    MESSAGES = "messages"
    VERBOSE = "verbose"


class MessageType(IntEnum):
    """``window/logMessage`` and ``window/showMessage`` severities."""

    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4


_LEVEL_LABELS: dict[MessageType, str] = {
    MessageType.ERROR: "Error",
    MessageType.WARNING: "Warn ",
    MessageType.INFO: "Info ",
    MessageType.LOG: "Log  ",
}


def _timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%I:%M:%S %p").lstrip("0")


def format_log_line(
    message_type: MessageType | int, message: str, now: datetime | None = None
) -> str:
    """Format a general log line for the output channel."""
    try:
        label = _LEVEL_LABELS[MessageType(message_type)]
    except ValueError:
        label = _LEVEL_LABELS[MessageType.LOG]
    return f"[{label} - {_timestamp(now)}] {message}"


def format_trace(
    message: str, data: Any = None, *, label: str = "Params", now: datetime | None = None
) -> str:
    """Format a protocol trace entry.

    ``data`` is only rendered when given; callers pass it at VERBOSE level.
    """
    line = f"[Trace - {_timestamp(now)}] {message}"
    if data is None:
        return line
    if isinstance(data, str):
        rendered = data
    else:
        rendered = json.dumps(data, indent=4)
    return f"{line}\n{label}: {rendered}\n"
