"""JSON-RPC LSP client over stdio.

Communicates with the FSO Tables language server using the standard
Content-Length framing over stdin/stdout of a subprocess.  Log and trace
output goes to an :class:`~fso_tables.output.OutputChannel`; unexpected
disconnects are handed to a pluggable error handler that decides whether the
server is relaunched.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from fso_tables import config
from fso_tables.errors import ConnectionClosedError, FsoTablesError, ResponseError
from fso_tables.lsp.documents import (
    FSO_TABLE_SELECTOR,
    DocumentSelector,
    file_to_uri,
    language_for_path,
    selector_matches,
)
from fso_tables.lsp.errorhandler import (
    CloseAction,
    DefaultErrorHandler,
    ErrorAction,
    ErrorHandler,
)
from fso_tables.lsp.tracing import MessageType, Trace, format_log_line, format_trace
from fso_tables.output import OutputChannel

logger = logging.getLogger("fso_tables.lsp.client")

ClosedCallback = Callable[["LspClient"], None]


def encode_message(body: dict) -> bytes:
    """Encode a JSON-RPC message with Content-Length header."""
    payload = json.dumps(body).encode("utf-8")
    header = f"Content-Length: {len(payload)}\r\n\r\n".encode("ascii")
    return header + payload


@dataclass
class OpenDocument:
    """A document the server has been told about."""

    uri: str
    language_id: str
    version: int
    text: str


class LspClient:
    """JSON-RPC client that communicates with an LSP server subprocess via stdio."""

    def __init__(
        self,
        client_id: str,
        name: str,
        command: list[str],
        *,
        document_selector: DocumentSelector = FSO_TABLE_SELECTOR,
        output: OutputChannel | None = None,
        trace_output: OutputChannel | None = None,
        error_handler: ErrorHandler | None = None,
        workspace_root: str | None = None,
        on_closed: ClosedCallback | None = None,
    ) -> None:
        """Store configuration without starting the server.

        Args:
            client_id: Identifier of this client, used in logs.
            name: Human-readable server name.
            command: Command and arguments to launch the server.
            document_selector: Documents this client synchronizes.
            output: Channel for general log output.
            trace_output: Channel for protocol traces (defaults to ``output``).
            error_handler: Restart policy for unexpected disconnects.
            workspace_root: Workspace directory sent during ``initialize``.
            on_closed: Called once the error handler gives up on the connection.
        """
        self.client_id = client_id
        self.name = name
        self._command = command
        self._selector = tuple(document_selector)
        self._output = output
        self._trace_output = trace_output or output
        self._error_handler: ErrorHandler = error_handler or DefaultErrorHandler(name)
        self._workspace_root = str(Path(workspace_root or os.getcwd()).resolve())
        self._on_closed = on_closed

        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._recovery_task: asyncio.Task[None] | None = None
        self._spawn_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._next_id: int = 1
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._pending_methods: dict[int, tuple[str, float]] = {}
        self._diagnostics: dict[str, list[dict]] = {}
        self._diagnostics_event: dict[str, asyncio.Event] = {}
        self._documents: dict[str, OpenDocument] = {}
        self._trace: Trace = Trace.OFF
        self._running: bool = False
        self._initialized: bool = False
        self._stop_requested: bool = False
        self._error_count: int = 0

        self.last_error: Exception | None = None
        self.capabilities: dict[str, Any] = {}
        self.server_info: dict[str, Any] | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """Whether the LSP server subprocess is alive."""
        return self._running

    @property
    def is_initialized(self) -> bool:
        """Whether the ``initialize`` handshake completed."""
        return self._initialized

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def document_selector(self) -> tuple:
        return self._selector

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    @property
    def trace(self) -> Trace:
        return self._trace

    @trace.setter
    def trace(self, value: Trace) -> None:
        self._trace = value
        if self._running and self._initialized:
            self._spawn_background(
                self.notify("$/setTrace", {"value": value.value}), "lsp-set-trace"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Spawn the LSP server subprocess and begin the reader loop."""
        if self._running:
            logger.warning("LSP client already running for %s", self._command)
            return
        if self._stop_requested:
            logger.warning("LSP client %s was stopped, not starting", self.client_id)
            return
        await self._spawn()

    async def _spawn(self) -> None:
        # Tracked so stop() can wait for a launch that is still in flight
        self._spawn_task = asyncio.create_task(self._launch(), name="lsp-spawn")
        await asyncio.shield(self._spawn_task)

    async def _launch(self) -> None:
        logger.info("Starting LSP server: %s", " ".join(self._command))
        self.last_error = None
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            self.last_error = exc
            logger.error("LSP server binary not found: %s", self._command[0])
            self._log_output(MessageType.ERROR, f"Failed to launch server: {exc}")
            return
        except OSError as exc:
            self.last_error = exc
            logger.error("Failed to start LSP server: %s", exc)
            self._log_output(MessageType.ERROR, f"Failed to launch server: {exc}")
            return

        if self._stop_requested:
            logger.info(
                "Stop requested while launching, terminating pid=%s", process.pid
            )
            await self._terminate(process)
            return

        self._process = process
        self._running = True
        self._error_count = 0
        self._reader_task = asyncio.create_task(
            self._reader_loop(process), name="lsp-reader"
        )
        self._stderr_task = asyncio.create_task(
            self._stderr_loop(process), name="lsp-stderr"
        )
        logger.info("LSP server started (pid=%s)", process.pid)

    async def stop(self, timeout: float = config.SHUTDOWN_TIMEOUT) -> None:
        """Send shutdown/exit and terminate the server process."""
        self._stop_requested = True

        if self._recovery_task and not self._recovery_task.done():
            self._recovery_task.cancel()
            try:
                await self._recovery_task
            except asyncio.CancelledError:
                pass

        spawn = self._spawn_task
        if spawn is not None and not spawn.done():
            # The launch sees the stop flag and terminates its own process
            await asyncio.wait({spawn})

        process = self._process
        if not self._running or process is None:
            return

        logger.info("Stopping LSP server (pid=%s)", process.pid)
        try:
            await self.request("shutdown", timeout=timeout)
        except (asyncio.TimeoutError, FsoTablesError) as exc:
            logger.debug("Shutdown request failed (%s), proceeding to exit", exc)

        try:
            await self.notify("exit")
        except FsoTablesError:
            logger.debug("Exit notification could not be delivered")

        # Give the process a moment to exit cleanly
        try:
            await asyncio.wait_for(process.wait(), timeout=config.EXIT_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("LSP server did not exit gracefully, killing")
            try:
                process.kill()
                await process.wait()
            except ProcessLookupError:
                pass

        self._running = False
        self._initialized = False

        for task in (self._reader_task, self._stderr_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._fail_pending("LSP server stopped")
        logger.info("LSP server stopped")

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=config.EXIT_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("LSP server pid=%s ignored SIGTERM, killing", process.pid)
            try:
                process.kill()
                await process.wait()
            except ProcessLookupError:
                pass

    # ------------------------------------------------------------------
    # Connection loss
    # ------------------------------------------------------------------

    async def _recover(self, process: asyncio.subprocess.Process) -> None:
        """Relaunch the server after an unexpected disconnect, as policy allows."""
        await self._terminate(process)
        self._log_output(
            MessageType.ERROR,
            f"Server process exited with code {process.returncode}.",
        )

        while not self._stop_requested:
            if self._error_handler.closed() is CloseAction.DO_NOT_RESTART:
                message = getattr(self._error_handler, "give_up_message", None) or (
                    "The connection to the server got closed. "
                    "Server will not be restarted."
                )
                self._give_up(message)
                return

            delay = self._error_handler.restart_delay()
            self._log_output(
                MessageType.INFO,
                f"Connection to server got closed. Server will restart in {delay:.1f}s.",
            )
            if delay > 0:
                await asyncio.sleep(delay)
            if self._stop_requested:
                return

            await self._spawn()
            if not self._running:
                continue
            try:
                await self.initialize()
            except (asyncio.TimeoutError, FsoTablesError) as exc:
                logger.warning("Re-initializing %s failed: %s", self.name, exc)
            if not self._running:
                continue
            await self._reopen_documents()
            if not self._running:
                continue
            return

    def _give_up(self, message: str) -> None:
        self._log_output(MessageType.ERROR, message)
        logger.error("%s: %s", self.client_id, message)
        self._stop_requested = True
        if self._on_closed is not None:
            self._on_closed(self)

    async def _shutdown_after_errors(self, process: asyncio.subprocess.Process) -> None:
        await self._terminate(process)
        self._give_up(
            f"Too many transport errors ({self._error_count}). "
            "The connection to the server was shut down."
        )

    def _handle_transport_error(self, error: Exception, message: dict | None = None) -> bool:
        """Consult the error handler; returns False when the connection must close."""
        self._error_count += 1
        logger.warning("Transport error from %s: %s", self.name, error)
        action = self._error_handler.error(error, message, self._error_count)
        return action is ErrorAction.CONTINUE

    # ------------------------------------------------------------------
    # JSON-RPC transport
    # ------------------------------------------------------------------

    async def _send(self, message: dict) -> None:
        """Write a JSON-RPC message to the server's stdin."""
        process = self._process
        if not self._running or process is None or process.stdin is None:
            raise ConnectionClosedError("LSP server is not running")
        self._trace_outgoing(message)
        process.stdin.write(encode_message(message))
        try:
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ConnectionClosedError(f"LSP server pipe closed: {exc}") from exc

    async def request(
        self,
        method: str,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a JSON-RPC request and wait for the response.

        Args:
            method: The LSP method name (e.g. ``initialize``).
            params: Optional parameters dict.
            timeout: Seconds to wait for the response; ``None`` waits forever.

        Returns:
            The ``result`` field from the JSON-RPC response.

        Raises:
            asyncio.TimeoutError: If no response arrives within *timeout*.
            ConnectionClosedError: If the server is not running or goes away.
            ResponseError: If the server returns a JSON-RPC error.
        """
        request_id = self._next_id
        self._next_id += 1

        message: dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
        }
        if params is not None:
            message["params"] = params

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = future
        self._pending_methods[request_id] = (method, time.monotonic())

        try:
            await self._send(message)
            result = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self._forget(request_id)
            logger.warning("Request %s (id=%d) timed out", method, request_id)
            raise
        except BaseException:
            self._forget(request_id)
            raise

        return result

    async def notify(self, method: str, params: dict | None = None) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        message: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
        }
        if params is not None:
            message["params"] = params
        await self._send(message)

    def _write_nowait(self, message: dict) -> None:
        process = self._process
        if process is None or process.stdin is None or not self._running:
            return
        self._trace_outgoing(message)
        process.stdin.write(encode_message(message))
        self._spawn_background(process.stdin.drain(), "lsp-drain")

    def _forget(self, request_id: int) -> None:
        self._pending.pop(request_id, None)
        self._pending_methods.pop(request_id, None)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(ConnectionClosedError(reason))
        self._pending.clear()
        self._pending_methods.clear()

    def _spawn_background(self, coro: Any, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Background task %s failed: %s", task.get_name(), task.exception())

    # ------------------------------------------------------------------
    # Reader loop
    # ------------------------------------------------------------------

    async def _read_headers(self, stdout: asyncio.StreamReader) -> dict[str, str]:
        """Read LSP message headers until the blank line separator."""
        headers: dict[str, str] = {}
        while True:
            line_bytes = await stdout.readline()
            if not line_bytes:
                raise ConnectionClosedError("LSP server stdout closed")
            line = line_bytes.decode("ascii", errors="replace").strip()
            if not line:
                break
            if ":" in line:
                key, value = line.split(":", 1)
                headers[key.strip()] = value.strip()
        return headers

    async def _reader_loop(self, process: asyncio.subprocess.Process) -> None:
        """Continuously read JSON-RPC messages from the server's stdout."""
        assert process.stdout is not None
        stdout = process.stdout
        cancelled = False
        keep_open = True

        try:
            while keep_open and self._running:
                try:
                    headers = await self._read_headers(stdout)
                except ConnectionClosedError:
                    break

                content_length_str = headers.get("Content-Length")
                if content_length_str is None:
                    keep_open = self._handle_transport_error(
                        ValueError("Missing Content-Length header")
                    )
                    continue

                try:
                    content_length = int(content_length_str)
                except ValueError as exc:
                    keep_open = self._handle_transport_error(exc)
                    continue

                try:
                    body_bytes = await stdout.readexactly(content_length)
                except asyncio.IncompleteReadError:
                    break

                try:
                    message = json.loads(body_bytes.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                    keep_open = self._handle_transport_error(exc)
                    continue

                self._dispatch(message)

        except asyncio.CancelledError:
            cancelled = True
            raise
        except Exception as exc:
            logger.error("LSP reader loop crashed: %s", exc, exc_info=True)
        finally:
            self._running = False
            self._initialized = False
            self._fail_pending("LSP reader loop ended")
            if not cancelled and not self._stop_requested:
                if not keep_open:
                    self._recovery_task = asyncio.create_task(
                        self._shutdown_after_errors(process), name="lsp-shutdown"
                    )
                elif self._recovery_task is None or self._recovery_task.done():
                    self._recovery_task = asyncio.create_task(
                        self._recover(process), name="lsp-recover"
                    )

    async def _stderr_loop(self, process: asyncio.subprocess.Process) -> None:
        """Forward the server's stderr to the output channel."""
        assert process.stderr is not None
        while True:
            line = await process.stderr.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text and self._output is not None:
                self._output.append_line(text)

    def _dispatch(self, message: dict) -> None:
        """Route an incoming JSON-RPC message to the right handler."""
        if "id" in message and "method" not in message:
            # Response to a request we sent
            request_id = message["id"]
            method, started = self._pending_methods.pop(request_id, ("unknown", None))
            self._trace_response(method, request_id, started, message)
            future = self._pending.pop(request_id, None)
            if future is None or future.done():
                logger.debug("No pending future for response id=%s", request_id)
                return
            if "error" in message:
                err = message["error"] or {}
                future.set_exception(
                    ResponseError(
                        err.get("code", 0), err.get("message", ""), err.get("data")
                    )
                )
            else:
                future.set_result(message.get("result"))

        elif "method" in message and "id" not in message:
            # Server notification
            params = message.get("params") or {}
            self._trace_incoming(f"Received notification '{message['method']}'.", params)
            self._handle_notification(message["method"], params)

        elif "method" in message and "id" in message:
            request_id = message["id"]
            method = message["method"]
            params = message.get("params") or {}
            self._trace_incoming(f"Received request '{method} - ({request_id})'.", params)
            result = self._handle_server_request(method, params)
            # Always answer so the server doesn't hang
            self._write_nowait({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _handle_notification(self, method: str, params: dict) -> None:
        """Handle a notification from the LSP server."""
        if method == "textDocument/publishDiagnostics":
            uri = params.get("uri", "")
            diagnostics = params.get("diagnostics", [])
            self._diagnostics[uri] = diagnostics
            event = self._diagnostics_event.get(uri)
            if event is not None:
                event.set()
            logger.debug("Received %d diagnostics for %s", len(diagnostics), uri)
        elif method == "window/logMessage":
            self._log_output(params.get("type", MessageType.LOG), params.get("message", ""))
        elif method == "window/showMessage":
            message_type = params.get("type", MessageType.INFO)
            text = params.get("message", "")
            self._log_output(message_type, text)
            level = logging.WARNING if message_type <= MessageType.WARNING else logging.INFO
            logger.log(level, "%s: %s", self.name, text)
        elif method == "$/logTrace":
            if self._trace is not Trace.OFF and self._trace_output is not None:
                line = format_trace(params.get("message", ""))
                verbose = params.get("verbose")
                if verbose and self._trace is Trace.VERBOSE:
                    line = f"{line}\n{verbose}"
                self._trace_output.append_line(line)
        else:
            logger.debug("Unhandled notification: %s", method)

    def _handle_server_request(self, method: str, params: dict) -> Any:
        if method == "workspace/configuration":
            return [None for _ in params.get("items", [])]
        if method == "window/showMessageRequest":
            self._log_output(params.get("type", MessageType.INFO), params.get("message", ""))
            return None
        if method not in (
            "window/workDoneProgress/create",
            "client/registerCapability",
            "client/unregisterCapability",
        ):
            logger.debug("Answering unsupported server request %s with null", method)
        return None

    # ------------------------------------------------------------------
    # Output and tracing
    # ------------------------------------------------------------------

    def _log_output(self, message_type: MessageType | int, message: str) -> None:
        if self._output is not None:
            self._output.append_line(format_log_line(message_type, message))

    def _trace_line(self, text: str, data: Any = None, label: str = "Params") -> None:
        if self._trace is Trace.OFF or self._trace_output is None:
            return
        if self._trace is not Trace.VERBOSE:
            data = None
        self._trace_output.append_line(format_trace(text, data, label=label))

    def _trace_outgoing(self, message: dict) -> None:
        method = message.get("method")
        if method is None:
            self._trace_line(
                f"Sending response '{message.get('id')}'.",
                message.get("result"),
                label="Result",
            )
        elif "id" in message:
            self._trace_line(
                f"Sending request '{method} - ({message['id']})'.", message.get("params")
            )
        else:
            self._trace_line(f"Sending notification '{method}'.", message.get("params"))

    def _trace_incoming(self, text: str, params: Any) -> None:
        self._trace_line(text, params or None)

    def _trace_response(
        self, method: str, request_id: Any, started: float | None, message: dict
    ) -> None:
        elapsed = ""
        if started is not None:
            elapsed = f" in {int((time.monotonic() - started) * 1000)}ms"
        text = f"Received response '{method} - ({request_id})'{elapsed}."
        if "error" in message:
            self._trace_line(text, message["error"], label="Error")
        else:
            self._trace_line(text, message.get("result"), label="Result")

    # ------------------------------------------------------------------
    # LSP protocol helpers
    # ------------------------------------------------------------------

    async def initialize(self) -> dict:
        """Send the ``initialize`` request to the LSP server.

        No timeout is applied; a hung server leaves the handshake pending.

        Returns:
            The server's ``InitializeResult``.
        """
        root_uri = file_to_uri(self._workspace_root)
        params = {
            "processId": os.getpid(),
            "clientInfo": {"name": self.name, "version": config.VERSION},
            "rootUri": root_uri,
            "rootPath": self._workspace_root,
            "trace": self._trace.value,
            "capabilities": {
                "general": {"positionEncodings": ["utf-16"]},
                "window": {"workDoneProgress": True},
                "textDocument": {
                    "synchronization": {
                        "dynamicRegistration": False,
                        "willSave": False,
                        "willSaveWaitUntil": False,
                        "didSave": False,
                    },
                    "publishDiagnostics": {
                        "relatedInformation": True,
                        "versionSupport": True,
                        "tagSupport": {"valueSet": [1, 2]},
                    },
                },
                "workspace": {
                    "configuration": True,
                    "workspaceFolders": True,
                },
            },
            "workspaceFolders": [
                {
                    "uri": root_uri,
                    "name": Path(self._workspace_root).name,
                }
            ],
        }
        result = await self.request("initialize", params)
        if isinstance(result, dict):
            self.capabilities = result.get("capabilities") or {}
            self.server_info = result.get("serverInfo")
        await self.notify("initialized", {})
        self._initialized = True
        logger.info("LSP server initialized for %s", self._workspace_root)
        return result if isinstance(result, dict) else {}

    def handles(self, uri: str, language_id: str | None) -> bool:
        """Whether the document selector covers this document."""
        return selector_matches(self._selector, uri, language_id)

    def _expect_diagnostics(self, uri: str) -> None:
        self._diagnostics.pop(uri, None)
        event = self._diagnostics_event.setdefault(uri, asyncio.Event())
        event.clear()

    async def open_document(
        self, file_path: str, text: str, language_id: str | None = None
    ) -> str | None:
        """Notify the server that a document was opened.

        Returns:
            The document URI, or ``None`` if the selector rejects the document.
        """
        language_id = language_id or language_for_path(file_path) or "plaintext"
        uri = file_to_uri(file_path)
        if not self.handles(uri, language_id):
            logger.debug("Document %s (%s) not handled by %s", uri, language_id, self.name)
            return None
        if uri in self._documents:
            return await self.change_document(file_path, text)

        document = OpenDocument(uri=uri, language_id=language_id, version=1, text=text)
        self._documents[uri] = document
        self._expect_diagnostics(uri)
        await self.notify(
            "textDocument/didOpen",
            {
                "textDocument": {
                    "uri": uri,
                    "languageId": language_id,
                    "version": document.version,
                    "text": text,
                }
            },
        )
        return uri

    async def change_document(self, file_path: str, text: str) -> str | None:
        """Notify the server that a document changed (full sync)."""
        uri = file_to_uri(file_path)
        document = self._documents.get(uri)
        if document is None:
            return await self.open_document(file_path, text)

        document.version += 1
        document.text = text
        self._expect_diagnostics(uri)
        await self.notify(
            "textDocument/didChange",
            {
                "textDocument": {"uri": uri, "version": document.version},
                "contentChanges": [{"text": text}],
            },
        )
        return uri

    async def close_document(self, file_path: str) -> None:
        """Notify the server that a document was closed."""
        uri = file_to_uri(file_path)
        if self._documents.pop(uri, None) is None:
            return
        self._diagnostics.pop(uri, None)
        await self.notify("textDocument/didClose", {"textDocument": {"uri": uri}})

    async def _reopen_documents(self) -> None:
        for document in list(self._documents.values()):
            try:
                await self.notify(
                    "textDocument/didOpen",
                    {
                        "textDocument": {
                            "uri": document.uri,
                            "languageId": document.language_id,
                            "version": document.version,
                            "text": document.text,
                        }
                    },
                )
            except FsoTablesError as exc:
                logger.warning("Could not reopen %s: %s", document.uri, exc)
                return

    async def get_diagnostics(
        self, uri: str, timeout: float = config.DIAGNOSTICS_TIMEOUT
    ) -> list[dict]:
        """Wait for diagnostics for the given URI.

        If diagnostics are already cached, returns them immediately.
        Otherwise waits up to *timeout* seconds for the server to publish them.

        Returns:
            A list of LSP Diagnostic objects.
        """
        if uri in self._diagnostics:
            return self._diagnostics[uri]

        event = self._diagnostics_event.setdefault(uri, asyncio.Event())
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("Timed out waiting for diagnostics on %s", uri)
            return []

        return self._diagnostics.get(uri, [])
