"""Language server discovery.

Resolves the configured server path and checks that it can be launched.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import shutil
import stat

from fso_tables import config
from fso_tables.errors import (
    ConfigurationError,
    ServerAccessError,
    ServerNotFoundError,
)
from fso_tables.settings import SettingsSource

logger = logging.getLogger("fso_tables.discovery")


def read_server_path(settings: SettingsSource) -> str | None:
    """Read and normalize the ``fsoTables.serverPath`` setting.

    Returns:
        The server path, or ``None`` when the setting is absent or empty.

    Raises:
        ConfigurationError: If the setting holds something other than a string.
    """
    value = settings.get(config.SERVER_PATH_SETTING)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(
            f"{config.SERVER_PATH_SETTING} must be a string, "
            f"got {type(value).__name__}",
            details={"value": repr(value)},
        )

    value = value.strip()
    if not value:
        return None

    path = os.path.expanduser(os.path.expandvars(value))

    # Bare command names are looked up on PATH
    if os.sep not in path and (os.altsep is None or os.altsep not in path):
        found = shutil.which(path)
        if found is not None:
            logger.debug("Resolved %s on PATH: %s", path, found)
            return found
    return path


def check_server_path(path: str) -> None:
    """Blocking accessibility check for the server executable.

    Raises:
        ServerNotFoundError: If nothing exists at ``path``.
        ServerAccessError: For any other reason the path cannot be launched.
    """
    try:
        info = os.stat(path)
    except FileNotFoundError as exc:
        raise ServerNotFoundError(path) from exc
    except OSError as exc:
        raise ServerAccessError(path, exc) from exc
    except ValueError as exc:
        # Embedded NUL bytes are rejected before reaching the filesystem
        raise ServerAccessError(path, OSError(errno.EINVAL, str(exc))) from exc

    if stat.S_ISDIR(info.st_mode):
        raise ServerAccessError(
            path, IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        )
    if not os.access(path, os.X_OK):
        raise ServerAccessError(
            path, PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)
        )


async def verify_server_path(path: str) -> str:
    """Check the server executable without blocking the event loop.

    Returns:
        ``path`` unchanged, for chaining.
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, check_server_path, path)
    return path
