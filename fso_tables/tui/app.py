"""FSO Tables terminal host.

A Textual application that plays the editor's part: it owns the output
panel, surfaces warnings and errors as notifications and binds the restart
command to a key.
"""

from __future__ import annotations

import logging
from typing import Any

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.widgets import Footer, Header

from fso_tables.config import VERSION
from fso_tables.extension import RESTART_COMMAND, activate, deactivate
from fso_tables.host import CommandHandler, CommandRegistry, Disposable, ExtensionContext
from fso_tables.output import OutputChannel, OutputChannelHandler
from fso_tables.session import SessionManager
from fso_tables.settings import SettingsSource
from fso_tables.tui.widgets import OutputPanel, SessionIndicator

logger = logging.getLogger("fso_tables.tui")

APP_CSS = """
Screen {
    background: #171717;
}

Header {
    background: #0d0d0d;
    color: #ececec;
}

HeaderTitle {
    color: #10b981;
    text-style: bold;
}

Footer {
    background: #0d0d0d;
    color: #6b6b6b;
}
"""


class TuiHost:
    """EditorHost backed by a running Textual app."""

    def __init__(self, app: App, settings: SettingsSource) -> None:
        self._app = app
        self._settings = settings
        self.commands = CommandRegistry()

    def get_settings(self) -> SettingsSource:
        return self._settings

    def create_output_channel(self, name: str) -> OutputChannel:
        return OutputChannel(name)

    def show_warning(self, message: str) -> None:
        self._app.notify(escape(message), title="FSO Tables", severity="warning", timeout=8)

    def show_error(self, message: str) -> None:
        self._app.notify(escape(message), title="FSO Tables", severity="error", timeout=12)

    def register_command(self, command_id: str, handler: CommandHandler) -> Disposable:
        return self.commands.register(command_id, handler)

    def execute_command(self, command_id: str, *args: Any) -> Any:
        return self.commands.execute(command_id, *args)


class FsoTablesApp(App):
    """Terminal host for the FSO Tables language client."""

    CSS = APP_CSS

    BINDINGS = [
        Binding("ctrl+r", "restart", "Restart LSP", show=True),
        Binding("ctrl+l", "clear", "Clear", show=True),
        Binding("ctrl+c", "quit", "Quit", show=True),
    ]

    TITLE = "FSO Tables"
    SUB_TITLE = f"Language client v{VERSION}"

    def __init__(self, settings: SettingsSource, **manager_options: Any) -> None:
        super().__init__()
        self.host = TuiHost(self, settings)
        self.context = ExtensionContext(self.host)
        self._manager_options = manager_options
        self._unsubscribe_output = None
        self._log_handler: OutputChannelHandler | None = None

    @property
    def manager(self) -> SessionManager | None:
        return self.context.session_manager

    def compose(self) -> ComposeResult:
        yield Header()
        yield SessionIndicator(id="session-indicator")
        yield OutputPanel(id="output-panel")
        yield Footer()

    async def on_mount(self) -> None:
        """Activate the client once the widgets exist."""
        manager = await activate(self.context, **self._manager_options)

        panel = self.query_one("#output-panel", OutputPanel)
        self._unsubscribe_output = panel.attach(manager.output)

        # Log records would corrupt the terminal, send them to the panel
        self._log_handler = OutputChannelHandler(manager.output, logging.WARNING)
        self._log_handler.setFormatter(logging.Formatter("[%(levelname)s %(name)s] %(message)s"))
        logging.getLogger("fso_tables").addHandler(self._log_handler)

        self._refresh_state()
        self.set_interval(0.2, self._refresh_state)

    def _refresh_state(self) -> None:
        manager = self.manager
        if manager is None:
            return
        try:
            indicator = self.query_one("#session-indicator", SessionIndicator)
        except NoMatches:
            return
        indicator.state = manager.state

    def action_restart(self) -> None:
        """Run the restart command."""
        if RESTART_COMMAND in self.host.commands:
            self.host.execute_command(RESTART_COMMAND)

    def action_clear(self) -> None:
        """Clear the output panel and channel buffer."""
        self.query_one("#output-panel", OutputPanel).clear()
        if self.manager is not None:
            self.manager.output.clear()

    async def on_unmount(self) -> None:
        """Stop the server before exiting."""
        pending = deactivate(self.context)
        if pending is not None:
            await pending
        if self._log_handler is not None:
            logging.getLogger("fso_tables").removeHandler(self._log_handler)
        if self._unsubscribe_output is not None:
            self._unsubscribe_output()
        self.context.dispose()


def run_tui(settings: SettingsSource, **manager_options: Any) -> None:
    """Run the terminal host until the user quits."""
    app = FsoTablesApp(settings, **manager_options)
    app.run()
