"""LSP (Language Server Protocol) client for the FSO Tables server.

Provides:
- LspClient: JSON-RPC client for communicating with the server over stdio
- DefaultErrorHandler: bounded restart policy for unexpected disconnects
- DocumentFilter / FSO_TABLE_SELECTOR: which documents the client syncs
"""

from fso_tables.lsp.client import LspClient
from fso_tables.lsp.documents import FSO_TABLE_LANGUAGE, FSO_TABLE_SELECTOR, DocumentFilter
from fso_tables.lsp.errorhandler import (
    CloseAction,
    DefaultErrorHandler,
    ErrorAction,
    ErrorHandler,
    exponential_backoff,
    no_backoff,
)
from fso_tables.lsp.tracing import MessageType, Trace

__all__ = [
    "LspClient",
    "FSO_TABLE_LANGUAGE",
    "FSO_TABLE_SELECTOR",
    "DocumentFilter",
    "CloseAction",
    "DefaultErrorHandler",
    "ErrorAction",
    "ErrorHandler",
    "exponential_backoff",
    "no_backoff",
    "MessageType",
    "Trace",
]
