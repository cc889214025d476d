"""FSO Tables language client.

Launches and supervises the FSO Tables language server for an editor host.
"""

from fso_tables.config import VERSION
from fso_tables.extension import activate, deactivate
from fso_tables.host import ConsoleHost, EditorHost, ExtensionContext
from fso_tables.output import OutputChannel
from fso_tables.session import ManagerState, Session, SessionManager

__version__ = VERSION
__all__ = [
    "activate",
    "deactivate",
    "ConsoleHost",
    "EditorHost",
    "ExtensionContext",
    "OutputChannel",
    "ManagerState",
    "Session",
    "SessionManager",
    "VERSION",
]
