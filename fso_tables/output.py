"""Shared output channel.

One named channel is created at activation and handed to every session, so
log and trace text from successive server processes lands in the same place.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable

logger = logging.getLogger("fso_tables.output")

OutputListener = Callable[[str], None]


class OutputChannel:
    """Append-only, line-oriented log surface.

    Lines are kept in a bounded buffer and pushed to every subscribed
    listener (a terminal widget, a console echo, a test recorder).
    """

    def __init__(self, name: str, *, max_lines: int = 10_000) -> None:
        self.name = name
        self._lines: deque[str] = deque(maxlen=max_lines)
        self._partial: str = ""
        self._listeners: list[OutputListener] = []
        self._disposed = False

    @property
    def lines(self) -> list[str]:
        """Completed lines currently buffered."""
        return list(self._lines)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def append(self, text: str) -> None:
        """Append text; only completed lines are published."""
        if self._disposed:
            logger.debug("Dropping output for disposed channel %s", self.name)
            return
        buffered = self._partial + text
        *complete, self._partial = buffered.split("\n")
        for line in complete:
            self._publish(line)

    def append_line(self, text: str) -> None:
        self.append(text + "\n")

    def clear(self) -> None:
        self._lines.clear()
        self._partial = ""

    def subscribe(self, listener: OutputListener) -> Callable[[], None]:
        """Register a listener for new lines.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        if self._partial:
            self._publish(self._partial)
            self._partial = ""
        self._disposed = True
        self._listeners.clear()

    def _publish(self, line: str) -> None:
        self._lines.append(line)
        for listener in list(self._listeners):
            try:
                listener(line)
            except Exception:
                logger.exception("Output listener failed on channel %s", self.name)


class OutputChannelHandler(logging.Handler):
    """Logging handler that writes formatted records to an OutputChannel."""

    def __init__(self, channel: OutputChannel, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.channel = channel

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.channel.append_line(self.format(record))
        except Exception:
            self.handleError(record)
