"""Terminal host for the FSO Tables language client."""

from fso_tables.tui.app import FsoTablesApp, TuiHost, run_tui

__all__ = ["FsoTablesApp", "TuiHost", "run_tui"]
