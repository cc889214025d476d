"""Unit tests for the FSO Tables error system."""

from __future__ import annotations

import errno

import pytest


@pytest.mark.unit
def test_error_definition_defaults():
    from fso_tables.errors import ErrorDefinition

    ed = ErrorDefinition(code="TEST-001", message="Test error")
    assert ed.code == "TEST-001"
    assert ed.message == "Test error"
    assert ed.retryable is False


@pytest.mark.unit
def test_base_error_uses_registry_message():
    from fso_tables.errors import FsoTablesError

    err = FsoTablesError(code="FT-LSP-001")
    assert str(err) == "Connection to language server closed"
    assert err.retryable is True
    assert err.details == {}


@pytest.mark.unit
def test_base_error_unknown_code():
    from fso_tables.errors import FsoTablesError

    err = FsoTablesError(code="FT-XXX-999")
    assert str(err) == "Unknown error"
    assert err.retryable is False


@pytest.mark.unit
def test_subclass_default_codes():
    from fso_tables.errors import (
        ConfigurationError,
        ConnectionClosedError,
        FsoTablesError,
    )

    assert ConfigurationError("bad").code == "FT-CFG-001"
    assert ConnectionClosedError("gone").code == "FT-LSP-001"
    assert FsoTablesError("boom").code == "FT-INT-001"


@pytest.mark.unit
def test_server_not_found_message():
    from fso_tables.errors import ServerNotFoundError

    err = ServerNotFoundError("/opt/fso/server")
    assert err.code == "FT-CFG-002"
    assert err.path == "/opt/fso/server"
    assert "/opt/fso/server" in str(err)
    assert "fsoTables.serverPath" in str(err)
    assert "restart" in str(err)
    assert err.details == {"path": "/opt/fso/server"}


@pytest.mark.unit
def test_server_access_error_keeps_cause():
    from fso_tables.errors import ServerAccessError

    cause = PermissionError(errno.EACCES, "Permission denied", "/opt/fso/server")
    err = ServerAccessError("/opt/fso/server", cause)
    assert err.code == "FT-CFG-003"
    assert err.cause is cause
    assert "Permission denied" in str(err)
    assert err.details["errno"] == errno.EACCES


@pytest.mark.unit
def test_response_error():
    from fso_tables.errors import ResponseError

    err = ResponseError(-32601, "Method not found", {"method": "foo"})
    assert str(err) == "LSP error -32601: Method not found"
    assert err.rpc_code == -32601
    assert err.data == {"method": "foo"}
    assert err.code == "FT-LSP-002"


@pytest.mark.unit
def test_error_to_dict():
    from fso_tables.errors import ConfigurationError

    err = ConfigurationError("bad value", details={"value": "3"})
    d = err.to_dict()
    assert d["error"]["code"] == "FT-CFG-001"
    assert d["error"]["message"] == "bad value"
    assert d["error"]["retryable"] is False
    assert d["error"]["details"] == {"value": "3"}


@pytest.mark.unit
def test_client_errors_dict():
    from fso_tables.errors import CLIENT_ERRORS

    for code in ("FT-CFG-001", "FT-CFG-002", "FT-CFG-003", "FT-LSP-001", "FT-LSP-002", "FT-INT-001"):
        assert code in CLIENT_ERRORS
        assert CLIENT_ERRORS[code].code == code

@pytest.mark.unit
def test_registry_singleton_and_lookup():
    from fso_tables.errors import FsoTablesError, get_error_registry

    registry = get_error_registry()
    assert registry is get_error_registry()
    assert registry.get_definition("FT-LSP-003").retryable is True
    assert registry.get_definition("FT-CFG-002").retryable is False
    assert registry.get_definition("nope") is None

    err = registry.create_error("FT-LSP-003", details={"pid": 12})
    assert isinstance(err, FsoTablesError)
    assert err.code == "FT-LSP-003"
    assert str(err) == "Language server failed to launch"
    assert err.retryable is True
    assert err.details == {"pid": 12}


@pytest.mark.unit
def test_registry_custom_message():
    from fso_tables.errors import get_error_registry

    err = get_error_registry().create_error("FT-LSP-003", "Failed to launch: Exec format error")
    assert str(err) == "Failed to launch: Exec format error"
    assert err.code == "FT-LSP-003"
    assert err.details == {}
