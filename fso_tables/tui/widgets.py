"""Widgets for the FSO Tables terminal host."""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import RichLog, Static

from fso_tables.output import OutputChannel
from fso_tables.session import ManagerState


class SessionIndicator(Static):
    """Visual indicator for the session manager state.

    Shows a colored dot and status text that updates based on manager state.
    """

    DEFAULT_CSS = """
    SessionIndicator {
        width: 100%;
        height: 1;
        padding: 0 1;
        background: #0d0d0d;
    }

    SessionIndicator.active {
        color: #10b981;
    }

    SessionIndicator.starting, SessionIndicator.stopping {
        color: #f59e0b;
    }

    SessionIndicator.idle {
        color: #ef4444;
    }

    SessionIndicator.unconfigured {
        color: #6b6b6b;
    }
    """

    state: reactive[ManagerState] = reactive(ManagerState.UNCONFIGURED)

    STATE_DISPLAY = {
        ManagerState.UNCONFIGURED: ("○", "Server path not configured"),
        ManagerState.IDLE: ("✗", "No server running"),
        ManagerState.STARTING: ("◐", "Starting..."),
        ManagerState.ACTIVE: ("●", "Server running"),
        ManagerState.STOPPING: ("◑", "Stopping..."),
    }

    def on_mount(self) -> None:
        self.watch_state(self.state)

    def watch_state(self, state: ManagerState) -> None:
        """Update display when state changes."""
        for s in ManagerState:
            self.remove_class(s.value)
        self.add_class(state.value)
        self._update_display()

    def _update_display(self) -> None:
        symbol, text = self.STATE_DISPLAY.get(self.state, ("?", "Unknown"))
        self.update(f"{symbol} {text}")


class OutputPanel(RichLog):
    """Scrolling view of the shared output channel."""

    DEFAULT_CSS = """
    OutputPanel {
        height: 1fr;
        background: #171717;
        color: #ececec;
        border: solid #3a3a3a;
        scrollbar-color: #3a3a3a;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(wrap=True, markup=False, highlight=False, **kwargs)

    def attach(self, channel: OutputChannel) -> Callable[[], None]:
        """Replay buffered lines and follow new ones.

        Returns:
            A callable that stops following the channel.
        """
        for line in channel.lines:
            self.write(Text(line))
        return channel.subscribe(lambda line: self.write(Text(line)))
