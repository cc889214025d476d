"""Activation entry points for the FSO Tables client.

``activate`` wires the shared output channel, the session manager and the
restart command into an :class:`ExtensionContext`; ``deactivate`` hands the
pending shutdown back to the host.
"""

from __future__ import annotations

import asyncio
import logging

from fso_tables.host import ExtensionContext
from fso_tables.session import SessionManager

logger = logging.getLogger("fso_tables.extension")

OUTPUT_CHANNEL_NAME = "FSO Tables"
RESTART_COMMAND = "fso-tables.restart"


async def activate(context: ExtensionContext, **manager_options) -> SessionManager:
    """Create the output channel and session manager, then start a session.

    Extra keyword arguments are passed to :class:`SessionManager`.
    """
    host = context.host
    output = host.create_output_channel(OUTPUT_CHANNEL_NAME)
    context.subscriptions.append(output)

    manager = SessionManager(host, output, **manager_options)
    context.session_manager = manager

    context.subscriptions.append(
        host.register_command(RESTART_COMMAND, manager.restart)
    )

    await manager.start_session()
    logger.info("FSO Tables client activated")
    return manager


def deactivate(context: ExtensionContext) -> asyncio.Future[None] | None:
    """Stop the session; returns the shutdown to await, or ``None`` if never activated."""
    manager: SessionManager | None = context.session_manager
    if manager is None:
        return None
    return manager.teardown()
