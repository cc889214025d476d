"""Shared pytest fixtures for FSO Tables client tests.

This module provides a recording editor host, a fake protocol client for
session manager tests and an executable fake language server for the
subprocess tests.  Fixtures are automatically available to every test file.
"""
import asyncio
import stat
import sys
import textwrap
from pathlib import Path
from typing import Any

import pytest

from fso_tables import config
from fso_tables.host import CommandRegistry
from fso_tables.lsp.tracing import Trace
from fso_tables.output import OutputChannel
from fso_tables.settings import StaticSettings


# ============================================================================
# Editor host
# ============================================================================

class RecordingHost:
    """EditorHost that records every user-visible message."""

    def __init__(self, settings: StaticSettings) -> None:
        self.settings = settings
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.commands = CommandRegistry()
        self.channels: dict[str, OutputChannel] = {}

    def get_settings(self) -> StaticSettings:
        return self.settings

    def create_output_channel(self, name: str) -> OutputChannel:
        channel = OutputChannel(name)
        self.channels[name] = channel
        return channel

    def show_warning(self, message: str) -> None:
        self.warnings.append(message)

    def show_error(self, message: str) -> None:
        self.errors.append(message)

    def register_command(self, command_id, handler):
        return self.commands.register(command_id, handler)

    def execute_command(self, command_id: str, *args: Any) -> Any:
        return self.commands.execute(command_id, *args)


@pytest.fixture
def settings() -> StaticSettings:
    """Settings with no server path configured."""
    return StaticSettings()


@pytest.fixture
def host(settings: StaticSettings) -> RecordingHost:
    return RecordingHost(settings)


@pytest.fixture
def output() -> OutputChannel:
    return OutputChannel("FSO Tables")


# ============================================================================
# Fake protocol client
# ============================================================================

class FakeClient:
    """Stands in for LspClient inside the session manager."""

    def __init__(self, client_id: str, name: str, command: list[str], **options: Any) -> None:
        self.client_id = client_id
        self.name = name
        self.command = command
        self.options = options
        self.trace = Trace.OFF
        self.is_running = False
        self.is_initialized = False
        self.last_error: Exception | None = None
        self.process = None
        self.start_calls = 0
        self.stop_calls = 0
        self.fail_spawn: Exception | None = None

    async def start(self) -> None:
        self.start_calls += 1
        if self.fail_spawn is not None:
            self.last_error = self.fail_spawn
            return
        self.is_running = True

    async def initialize(self) -> dict:
        self.is_initialized = True
        return {"capabilities": {}}

    async def stop(self) -> None:
        self.stop_calls += 1
        self.is_running = False
        self.is_initialized = False

    def close_connection(self) -> None:
        """Simulate the error handler giving up."""
        self.is_running = False
        self.options["on_closed"](self)


@pytest.fixture
def fake_clients() -> list[FakeClient]:
    """Every FakeClient built by ``client_factory``, in creation order."""
    return []


@pytest.fixture
def client_factory(fake_clients: list[FakeClient]):
    def _create(client_id, name, command, **options):
        client = FakeClient(client_id, name, command, **options)
        fake_clients.append(client)
        return client
    return _create


# ============================================================================
# Server binaries
# ============================================================================

FAKE_SERVER_SOURCE = '''
import json
import os
import sys

stdin = sys.stdin.buffer
stdout = sys.stdout.buffer


def read_message():
    headers = {}
    while True:
        line = stdin.readline()
        if not line:
            return None
        line = line.decode("ascii").strip()
        if not line:
            break
        key, _, value = line.partition(":")
        headers[key.strip().lower()] = value.strip()
    length = int(headers.get("content-length", "0"))
    return json.loads(stdin.read(length).decode("utf-8"))


def send(message):
    body = json.dumps(message).encode("utf-8")
    stdout.write(b"Content-Length: %d\\r\\n\\r\\n" % len(body))
    stdout.write(body)
    stdout.flush()


def publish(uri, version, text):
    diagnostics = []
    for number, line in enumerate(text.splitlines()):
        if "ERROR" in line:
            diagnostics.append({
                "range": {
                    "start": {"line": number, "character": 0},
                    "end": {"line": number, "character": len(line)},
                },
                "severity": 1,
                "code": "fso-lsp-error",
                "message": "Unexpected token ERROR",
            })
    send({
        "jsonrpc": "2.0",
        "method": "textDocument/publishDiagnostics",
        "params": {"uri": uri, "version": version, "diagnostics": diagnostics},
    })


sys.stderr.write("fake server ready\\n")
sys.stderr.flush()

while True:
    message = read_message()
    if message is None:
        sys.exit(1)
    method = message.get("method")
    params = message.get("params") or {}
    if method == "initialize":
        send({
            "jsonrpc": "2.0",
            "id": message["id"],
            "result": {
                "capabilities": {"textDocumentSync": 2},
                "serverInfo": {"name": "FSO Tables LSP", "version": "0.0.1"},
            },
        })
        send({"jsonrpc": "2.0", "method": "$/logTrace", "params": {"message": "Hello World!"}})
        send({
            "jsonrpc": "2.0",
            "method": "window/logMessage",
            "params": {"type": 3, "message": "fake server initialized"},
        })
    elif method == "initialized":
        if os.environ.get("FAKE_LSP_CRASH_AFTER_INIT"):
            sys.exit(3)
    elif method == "textDocument/didOpen":
        document = params["textDocument"]
        publish(document["uri"], document["version"], document["text"])
    elif method == "textDocument/didChange":
        document = params["textDocument"]
        publish(document["uri"], document["version"], params["contentChanges"][-1]["text"])
    elif method == "shutdown":
        send({"jsonrpc": "2.0", "id": message["id"], "result": None})
    elif method == "exit":
        sys.exit(0)
    elif "id" in message:
        send({
            "jsonrpc": "2.0",
            "id": message["id"],
            "error": {"code": -32601, "message": "Method not found"},
        })
'''


def _make_executable(path: Path) -> None:
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def executable_file(tmp_path: Path) -> str:
    """An executable placeholder binary; never actually launched."""
    binary = tmp_path / "fso-lsp"
    binary.write_text("#!/bin/sh\nexit 0\n")
    _make_executable(binary)
    return str(binary)


@pytest.fixture
def fake_server(tmp_path: Path) -> str:
    """An executable fake FSO Tables language server speaking LSP over stdio."""
    if sys.platform == "win32":
        pytest.skip("shebang scripts are not executable on Windows")
    script = tmp_path / "fake-fso-lsp"
    script.write_text(f"#!{sys.executable}\n" + textwrap.dedent(FAKE_SERVER_SOURCE))
    _make_executable(script)
    return str(script)


@pytest.fixture
def configure(settings: StaticSettings):
    """Set ``fsoTables.serverPath`` for the test."""
    def _set(value: Any) -> None:
        settings.update(config.SERVER_PATH_SETTING, value)
    return _set


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(config.SERVER_PATH_ENV, raising=False)
    monkeypatch.delenv("FAKE_LSP_CRASH_AFTER_INIT", raising=False)


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it holds or time runs out."""
    async def _wait(predicate, timeout: float = 10.0, interval: float = 0.02) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError(f"condition not met within {timeout}s")
            await asyncio.sleep(interval)
    return _wait
