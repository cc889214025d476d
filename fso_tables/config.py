"""Centralized client configuration for FSO Tables.

Reads from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from pathlib import Path


VERSION = "0.1.0"

# Editor setting naming the language server executable
SERVER_PATH_SETTING: str = "fsoTables.serverPath"
SERVER_PATH_ENV: str = "FSO_TABLES_SERVER_PATH"

# Settings file consulted by the bundled hosts
SETTINGS_FILE: Path = Path(
    os.environ.get(
        "FSO_TABLES_SETTINGS", str(Path.home() / ".fso-tables" / "settings.yaml")
    )
)

# Session restart
RESTART_DELAY: float = float(os.environ.get("FSO_TABLES_RESTART_DELAY", "0.5"))

# Automatic restarts after an unexpected disconnect
MAX_RESTART_COUNT: int = int(os.environ.get("FSO_TABLES_MAX_RESTARTS", "4"))
RESTART_WINDOW: float = float(os.environ.get("FSO_TABLES_RESTART_WINDOW", "180"))
MAX_ERROR_COUNT: int = int(os.environ.get("FSO_TABLES_MAX_ERRORS", "3"))

# Server shutdown and diagnostics
SHUTDOWN_TIMEOUT: float = float(os.environ.get("FSO_TABLES_SHUTDOWN_TIMEOUT", "5.0"))
EXIT_TIMEOUT: float = float(os.environ.get("FSO_TABLES_EXIT_TIMEOUT", "3.0"))
DIAGNOSTICS_TIMEOUT: float = float(
    os.environ.get("FSO_TABLES_DIAGNOSTICS_TIMEOUT", "5.0")
)

# Logging
LOG_LEVEL: str = os.environ.get("FSO_TABLES_LOG_LEVEL", "WARNING").upper()
