"""Tests for the Textual host, driven through ``App.run_test``."""

from __future__ import annotations

import pytest

from fso_tables import config
from fso_tables.session import ManagerState
from fso_tables.settings import StaticSettings
from fso_tables.tui.app import FsoTablesApp
from fso_tables.tui.widgets import SessionIndicator


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unconfigured_app(client_factory, fake_clients):
    app = FsoTablesApp(StaticSettings(), client_factory=client_factory, restart_delay=0)
    async with app.run_test() as pilot:
        await pilot.pause()
        assert app.manager is not None
        assert app.manager.state is ManagerState.UNCONFIGURED
        indicator = app.query_one("#session-indicator", SessionIndicator)
        assert indicator.state is ManagerState.UNCONFIGURED
        assert indicator.has_class("unconfigured")
    assert fake_clients == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_restart_binding(client_factory, fake_clients, executable_file):
    settings = StaticSettings({config.SERVER_PATH_SETTING: executable_file})
    app = FsoTablesApp(settings, client_factory=client_factory, restart_delay=0)
    async with app.run_test() as pilot:
        await pilot.pause()
        assert len(fake_clients) == 1

        await pilot.press("ctrl+r")
        await pilot.pause(0.2)

        assert len(fake_clients) == 2
        assert fake_clients[0].stop_calls == 1
        assert "Restarting LSP" in app.manager.output.lines


@pytest.mark.unit
@pytest.mark.asyncio
async def test_clear_binding(client_factory, executable_file):
    settings = StaticSettings({config.SERVER_PATH_SETTING: executable_file})
    app = FsoTablesApp(settings, client_factory=client_factory)
    async with app.run_test() as pilot:
        await pilot.pause()
        assert app.manager.output.lines == ["Launched LSP"]
        await pilot.press("ctrl+l")
        await pilot.pause()
        assert app.manager.output.lines == []
