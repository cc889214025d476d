"""Standardized error codes for the FSO Tables client.

Error code format: FT-[CATEGORY]-[CODE]

Categories:
- CFG: Configuration and server discovery errors
- LSP: Protocol / connection errors
- INT: Internal errors
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ErrorDefinition:
    """Definition of a standardized error code."""

    code: str
    message: str
    retryable: bool = False


class FsoTablesError(Exception):
    """Standardized client error with code and details."""

    default_code = "FT-INT-001"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        retryable: bool | None = None,
        details: dict[str, Any] | None = None,
    ):
        code = code or self.default_code
        definition = get_error_registry().get_definition(code)
        if message is None:
            message = definition.message if definition else "Unknown error"
        if retryable is None:
            retryable = definition.retryable if definition else False
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for logging or display."""
        return {
            "error": {
                "code": self.code,
                "message": str(self),
                "retryable": self.retryable,
                "details": self.details,
            }
        }


class ConfigurationError(FsoTablesError):
    """The settings source could not be read or holds an invalid value."""

    default_code = "FT-CFG-001"


class ServerNotFoundError(FsoTablesError):
    """The configured server path does not exist."""

    default_code = "FT-CFG-002"

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"FSO Tables language server not found at {path}. "
            "Fix the fsoTables.serverPath setting and run the restart command.",
            details={"path": path},
        )
        self.path = path


class ServerAccessError(FsoTablesError):
    """The configured server path exists but cannot be used."""

    default_code = "FT-CFG-003"

    def __init__(self, path: str, cause: OSError) -> None:
        super().__init__(
            f"Cannot access FSO Tables language server at {path}: {cause}",
            details={"path": path, "errno": cause.errno},
        )
        self.path = path
        self.cause = cause


class ConnectionClosedError(FsoTablesError):
    """The connection to the language server is closed."""

    default_code = "FT-LSP-001"


class ResponseError(FsoTablesError):
    """The language server answered a request with a JSON-RPC error."""

    default_code = "FT-LSP-002"

    def __init__(self, rpc_code: int, message: str, data: Any = None) -> None:
        super().__init__(
            f"LSP error {rpc_code}: {message}",
            details={"rpc_code": rpc_code, "data": data},
        )
        self.rpc_code = rpc_code
        self.data = data


# =============================================================================
# Client Error Definitions
# =============================================================================

CLIENT_ERRORS: dict[str, ErrorDefinition] = {
    # Configuration errors
    "FT-CFG-001": ErrorDefinition("FT-CFG-001", "Invalid client settings"),
    "FT-CFG-002": ErrorDefinition("FT-CFG-002", "Language server binary not found"),
    "FT-CFG-003": ErrorDefinition("FT-CFG-003", "Language server binary not accessible"),

    # Protocol errors
    "FT-LSP-001": ErrorDefinition("FT-LSP-001", "Connection to language server closed", retryable=True),
    "FT-LSP-002": ErrorDefinition("FT-LSP-002", "Language server request failed"),
    "FT-LSP-003": ErrorDefinition("FT-LSP-003", "Language server failed to launch", retryable=True),

    # Internal errors
    "FT-INT-001": ErrorDefinition("FT-INT-001", "Internal client error"),
}


class ErrorRegistry:
    """Registry for creating and managing standardized errors."""

    def __init__(self) -> None:
        self.errors = dict(CLIENT_ERRORS)

    def create_error(
        self,
        code: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> FsoTablesError:
        """Create a client error from a code, defaulting to its registered message."""
        return FsoTablesError(message, code=code, details=details)

    def get_definition(self, code: str) -> ErrorDefinition | None:
        """Get error definition by code."""
        return self.errors.get(code)


# Singleton instance
_registry: ErrorRegistry | None = None


def get_error_registry() -> ErrorRegistry:
    """Get the singleton error registry instance."""
    global _registry
    if _registry is None:
        _registry = ErrorRegistry()
    return _registry
