"""Restart and error policy for the LSP connection.

The client asks its error handler what to do when the transport reports a
problem or the server process goes away.  The handler is pluggable so a host
can swap in its own retry budget or backoff curve.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, Callable, Protocol

from fso_tables import config

logger = logging.getLogger("fso_tables.lsp.errorhandler")

BackoffCurve = Callable[[int], float]


class ErrorAction(Enum):
    """What to do after a transport error."""

    CONTINUE = "continue"
    SHUTDOWN = "shutdown"


class CloseAction(Enum):
    """What to do after the connection closed unexpectedly."""

    DO_NOT_RESTART = "do_not_restart"
    RESTART = "restart"


class ErrorHandler(Protocol):
    def error(self, error: Exception, message: dict[str, Any] | None, count: int) -> ErrorAction:
        ...

    def closed(self) -> CloseAction:
        ...

    def restart_delay(self) -> float:
        ...


def exponential_backoff(
    initial: float = 0.5, factor: float = 2.0, maximum: float = 8.0
) -> BackoffCurve:
    """Delay before restart attempt *n* (1-based): ``initial * factor**(n-1)``, capped."""

    def curve(attempt: int) -> float:
        if attempt <= 0:
            return 0.0
        return min(initial * factor ** (attempt - 1), maximum)

    return curve


def no_backoff() -> BackoffCurve:
    return lambda attempt: 0.0


class DefaultErrorHandler:
    """Bounded restart policy.

    Transport errors are tolerated up to ``max_error_count`` times.  After an
    unexpected close the server is restarted unless more than
    ``max_restart_count`` closes happened within ``window`` seconds.
    """

    def __init__(
        self,
        name: str,
        max_restart_count: int = config.MAX_RESTART_COUNT,
        *,
        window: float = config.RESTART_WINDOW,
        max_error_count: int = config.MAX_ERROR_COUNT,
        backoff: BackoffCurve | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_restart_count = max_restart_count
        self.window = window
        self.max_error_count = max_error_count
        self._backoff = backoff or exponential_backoff()
        self._clock = clock
        self._restarts: deque[float] = deque()
        self.give_up_message: str | None = None

    @property
    def restart_attempts(self) -> int:
        return len(self._restarts)

    def error(self, error: Exception, message: dict[str, Any] | None, count: int) -> ErrorAction:
        if count <= self.max_error_count:
            return ErrorAction.CONTINUE
        logger.warning("%s: %d transport errors, shutting down", self.name, count)
        return ErrorAction.SHUTDOWN

    def closed(self) -> CloseAction:
        self._restarts.append(self._clock())
        if len(self._restarts) <= self.max_restart_count:
            return CloseAction.RESTART

        elapsed = self._restarts[-1] - self._restarts[0]
        if elapsed <= self.window:
            self.give_up_message = (
                f"The {self.name} server crashed {self.max_restart_count + 1} times "
                f"in the last {int(self.window / 60)} minutes. "
                "The server will not be restarted."
            )
            return CloseAction.DO_NOT_RESTART

        self._restarts.popleft()
        return CloseAction.RESTART

    def restart_delay(self) -> float:
        return self._backoff(len(self._restarts))
