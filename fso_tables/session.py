"""Language server session lifecycle.

The :class:`SessionManager` owns at most one :class:`Session` at a time.  It
reads the configured server path on every start, verifies the binary,
launches the protocol client and exposes stop, restart and teardown
operations that never leave a second server process running.

All methods run on the event loop thread; mutations of the session slot only
happen between suspension points, so no locks guard the slot itself.  Starts
are serialized by a single-slot ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from fso_tables import config
from fso_tables.discovery import read_server_path, verify_server_path
from fso_tables.errors import (
    ConfigurationError,
    FsoTablesError,
    ServerAccessError,
    ServerNotFoundError,
    get_error_registry,
)
from fso_tables.host import EditorHost
from fso_tables.lsp.client import LspClient
from fso_tables.lsp.documents import FSO_TABLE_SELECTOR
from fso_tables.lsp.errorhandler import DefaultErrorHandler, ErrorHandler
from fso_tables.lsp.tracing import Trace
from fso_tables.output import OutputChannel
from fso_tables.settings import SettingsSource

logger = logging.getLogger("fso_tables.session")

CLIENT_ID = "fsoTables"
CLIENT_NAME = "FSO Tables LSP"

ClientFactory = Callable[..., LspClient]
ErrorHandlerFactory = Callable[[str], ErrorHandler]


class ManagerState(Enum):
    """Lifecycle state of the session manager (not of the protocol session)."""

    UNCONFIGURED = "unconfigured"
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


def default_error_handler(name: str) -> ErrorHandler:
    return DefaultErrorHandler(name, max_restart_count=config.MAX_RESTART_COUNT)


@dataclass
class Session:
    """One launched server process and the client bound to it."""

    server_path: str
    client: LspClient
    output: OutputChannel
    trace: Trace = Trace.VERBOSE
    begin_task: asyncio.Task[None] | None = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self.client.process

    async def ready(self) -> bool:
        """Wait for the launch and handshake; True if the client is usable."""
        if self.begin_task is not None:
            await asyncio.shield(self.begin_task)
        return self.client.is_initialized


class SessionManager:
    """Owns the single optional language server session.

    Args:
        host: Editor host used for settings and user-visible messages.
        output: Shared output channel, outlives every session.
        settings: Settings source; defaults to ``host.get_settings()`` at each start.
        client_factory: Builds the protocol client (``LspClient`` signature).
        error_handler_factory: Builds the restart policy for each client.
        restart_delay: Settling delay between a stop and the restarted start.
        workspace_root: Workspace directory announced to the server.
    """

    def __init__(
        self,
        host: EditorHost,
        output: OutputChannel,
        *,
        settings: SettingsSource | None = None,
        client_factory: ClientFactory = LspClient,
        error_handler_factory: ErrorHandlerFactory = default_error_handler,
        restart_delay: float = config.RESTART_DELAY,
        workspace_root: str | None = None,
    ) -> None:
        self._host = host
        self._output = output
        self._settings = settings
        self._client_factory = client_factory
        self._error_handler_factory = error_handler_factory
        self.restart_delay = restart_delay
        self._workspace_root = workspace_root

        self._session: Session | None = None
        self._state = ManagerState.UNCONFIGURED
        self._start_lock = asyncio.Lock()
        self._pending_restart: asyncio.Task[Session | None] | None = None
        self._pending_stops: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def output(self) -> OutputChannel:
        return self._output

    def _current_settings(self) -> SettingsSource:
        return self._settings if self._settings is not None else self._host.get_settings()

    def _set_state(self, state: ManagerState) -> None:
        if state is not self._state:
            logger.debug("Session manager %s -> %s", self._state.value, state.value)
            self._state = state

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_session(self) -> Session | None:
        """Launch a session for the configured server path.

        Returns the new (or already existing) session, or ``None`` when the
        server is not configured or cannot be used.  Never raises for
        configuration or filesystem problems; those become user-visible
        messages.  The handshake runs in the background.
        """
        async with self._start_lock:
            return await self._start_locked()

    async def _start_locked(self) -> Session | None:
        if self._session is not None:
            logger.debug("Session already exists for %s", self._session.server_path)
            return self._session

        try:
            server_path = read_server_path(self._current_settings())
        except ConfigurationError as exc:
            self._host.show_error(str(exc))
            self._set_state(ManagerState.IDLE)
            return None

        if server_path is None:
            logger.debug("%s is not set, staying idle", config.SERVER_PATH_SETTING)
            self._set_state(ManagerState.UNCONFIGURED)
            return None

        try:
            await verify_server_path(server_path)
        except ServerNotFoundError as exc:
            logger.warning("Server binary missing: %s", server_path)
            self._host.show_warning(str(exc))
            self._set_state(ManagerState.IDLE)
            return None
        except ServerAccessError as exc:
            logger.error("Server binary not usable: %s", exc.cause)
            self._host.show_error(str(exc))
            self._set_state(ManagerState.IDLE)
            return None

        self._set_state(ManagerState.STARTING)
        client = self._client_factory(
            CLIENT_ID,
            CLIENT_NAME,
            [server_path],
            document_selector=FSO_TABLE_SELECTOR,
            output=self._output,
            trace_output=self._output,
            error_handler=self._error_handler_factory(CLIENT_NAME),
            workspace_root=self._workspace_root,
            on_closed=self._handle_connection_closed,
        )
        client.trace = Trace.VERBOSE

        session = Session(server_path=server_path, client=client, output=self._output)
        self._session = session
        session.begin_task = asyncio.create_task(
            self._begin(session), name="fso-tables-begin"
        )
        self._output.append_line("Launched LSP")
        logger.info("Launched %s from %s", CLIENT_NAME, server_path)
        return session

    async def _begin(self, session: Session) -> None:
        client = session.client
        await client.start()
        if not client.is_running:
            if self._session is session:
                self._session = None
                self._set_state(ManagerState.IDLE)
                reason = client.last_error or "the process could not be spawned"
                error = get_error_registry().create_error(
                    "FT-LSP-003",
                    f"Failed to launch {CLIENT_NAME}: {reason}",
                    details={"path": session.server_path},
                )
                logger.error("%s [%s]", error, error.code)
                self._host.show_error(str(error))
            return

        if self._session is session:
            self._set_state(ManagerState.ACTIVE)

        try:
            await client.initialize()
        except FsoTablesError as exc:
            if self._session is session:
                logger.error("Initialize handshake failed: %s", exc)
                self._output.append_line(f"Initialize failed: {exc}")
            else:
                logger.debug("Handshake of retired session ended: %s", exc)

    # ------------------------------------------------------------------
    # Stop / restart / teardown
    # ------------------------------------------------------------------

    def stop_session(self) -> asyncio.Task[None] | None:
        """Retire the active session and schedule its shutdown.

        Returns:
            The pending shutdown task, or ``None`` if there was no session.
        """
        session = self._session
        if session is None:
            return None

        self._session = None
        self._set_state(ManagerState.STOPPING)
        task = asyncio.create_task(self._stop(session), name="fso-tables-stop")
        self._pending_stops.add(task)
        task.add_done_callback(self._pending_stops.discard)
        return task

    async def _stop(self, session: Session) -> None:
        try:
            await session.client.stop()
        except Exception:
            logger.exception("Error while stopping %s", CLIENT_NAME)
        else:
            uptime = (datetime.now() - session.created_at).total_seconds()
            logger.info("Stopped %s after %.1fs", CLIENT_NAME, uptime)
        finally:
            if self._session is None and self._state is ManagerState.STOPPING:
                self._set_state(ManagerState.IDLE)

    def restart(self) -> asyncio.Task[Session | None]:
        """Stop the current session and start a fresh one.

        The new start waits for the old server to shut down, then for the
        settling delay, and re-reads configuration.  A restart issued while
        another one is pending replaces it.

        Returns:
            The deferred start task.
        """
        self._output.append_line("Restarting LSP")
        if self._pending_restart is not None and not self._pending_restart.done():
            self._pending_restart.cancel()

        self.stop_session()
        # Includes stops still running from an earlier, superseded restart
        pending_stops = list(self._pending_stops)
        self._pending_restart = asyncio.create_task(
            self._deferred_start(pending_stops), name="fso-tables-restart"
        )
        return self._pending_restart

    async def _deferred_start(self, pending_stops: list[asyncio.Task[None]]) -> Session | None:
        if pending_stops:
            await asyncio.wait(pending_stops)
        await asyncio.sleep(self.restart_delay)
        return await self.start_session()

    def teardown(self) -> asyncio.Future[None]:
        """Stop everything on deactivation.

        Returns:
            The pending stop of the active session, or an already completed
            future when there is nothing to stop.
        """
        if self._pending_restart is not None and not self._pending_restart.done():
            self._pending_restart.cancel()
        self._pending_restart = None

        pending = self.stop_session()
        if pending is not None:
            return pending

        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        done.set_result(None)
        return done

    # ------------------------------------------------------------------
    # Connection loss
    # ------------------------------------------------------------------

    def _handle_connection_closed(self, client: LspClient) -> None:
        session = self._session
        if session is None or session.client is not client:
            return
        self._session = None
        self._set_state(ManagerState.IDLE)
        self._output.append_line("Connection to server closed")
        self._host.show_error(
            f"The connection to the {CLIENT_NAME} server was closed. "
            "Run the restart command to relaunch it."
        )
