"""Editor host contract.

The session manager never talks to a concrete editor.  It asks an
:class:`EditorHost` for configuration, an output channel, user-visible
messages and command registration.  :class:`ConsoleHost` is the headless
implementation used by the CLI; the Textual host lives in ``fso_tables.tui``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from rich.console import Console
from rich.markup import escape

from fso_tables.output import OutputChannel
from fso_tables.settings import SettingsSource

logger = logging.getLogger("fso_tables.host")

CommandHandler = Callable[..., Any]


class Disposable(Protocol):
    def dispose(self) -> None:
        ...


class CallbackDisposable:
    """Disposable that runs a callback once."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback: Callable[[], None] | None = callback

    def dispose(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class EditorHost(Protocol):
    """Surfaces the editor provides to the client."""

    def get_settings(self) -> SettingsSource:
        ...

    def create_output_channel(self, name: str) -> OutputChannel:
        ...

    def show_warning(self, message: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...

    def register_command(self, command_id: str, handler: CommandHandler) -> Disposable:
        ...


@dataclass
class ExtensionContext:
    """Per-activation state handed to ``activate``."""

    host: EditorHost
    subscriptions: list[Disposable] = field(default_factory=list)
    session_manager: Any = None

    def dispose(self) -> None:
        """Dispose subscriptions in reverse registration order."""
        while self.subscriptions:
            disposable = self.subscriptions.pop()
            try:
                disposable.dispose()
            except Exception:
                logger.exception("Failed to dispose %r", disposable)


class CommandRegistry:
    """Command table shared by the bundled hosts."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandHandler] = {}

    def register(self, command_id: str, handler: CommandHandler) -> Disposable:
        if command_id in self._commands:
            raise ValueError(f"Command {command_id} is already registered")
        self._commands[command_id] = handler
        return CallbackDisposable(lambda: self._commands.pop(command_id, None))

    def execute(self, command_id: str, *args: Any) -> Any:
        handler = self._commands.get(command_id)
        if handler is None:
            raise KeyError(f"Unknown command: {command_id}")
        logger.debug("Executing command %s", command_id)
        return handler(*args)

    def __contains__(self, command_id: str) -> bool:
        return command_id in self._commands


class ConsoleHost:
    """Headless host printing to a Rich console.

    Args:
        settings: Where configuration values come from.
        console: Console for warnings, errors and echoed output (stderr by default).
        echo_output: Mirror output channel lines to the console.
    """

    def __init__(
        self,
        settings: SettingsSource,
        console: Console | None = None,
        *,
        echo_output: bool = False,
    ) -> None:
        self._settings = settings
        self.console = console or Console(stderr=True)
        self.echo_output = echo_output
        self.commands = CommandRegistry()
        self.channels: dict[str, OutputChannel] = {}

    def get_settings(self) -> SettingsSource:
        return self._settings

    def create_output_channel(self, name: str) -> OutputChannel:
        channel = OutputChannel(name)
        if self.echo_output:
            channel.subscribe(
                lambda line: self.console.print(line, markup=False, highlight=False)
            )
        self.channels[name] = channel
        return channel

    def show_warning(self, message: str) -> None:
        self.console.print(f"[bold yellow]warning:[/bold yellow] {escape(message)}", highlight=False)

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]error:[/bold red] {escape(message)}", highlight=False)

    def register_command(self, command_id: str, handler: CommandHandler) -> Disposable:
        return self.commands.register(command_id, handler)

    def execute_command(self, command_id: str, *args: Any) -> Any:
        return self.commands.execute(command_id, *args)
