"""Tests for rxcord.mechanism - the error taxonomy."""

import pytest

from rxcord import (
    ConnectError,
    EndpointParseError,
    GatewayError,
    HandlerError,
    RestError,
    TransportClosed,
    WriteFailure,
)


def test_str_includes_source_and_note():
    e = ConnectError("refused", source="WebSocketTransport", note="gw:443")
    assert str(e) == "<WebSocketTransport> gw:443: refused"


def test_str_without_note():
    assert str(WriteFailure("broken pipe", source="Session")) == "<Session> broken pipe"


def test_all_errors_share_base():
    for cls in (ConnectError, TransportClosed, WriteFailure, EndpointParseError):
        assert issubclass(cls, GatewayError)


def test_transport_closed_carries_code():
    assert TransportClosed("bye", code=4004).code == 4004
    assert TransportClosed("bye").code is None


def test_handler_error_wraps_exception():
    cause = KeyError("missing")
    error = HandlerError(cause, source="UserHandler", note="op=0")
    assert error.exception is cause
    assert "missing" in str(error)


def test_endpoint_parse_error_is_value_error():
    with pytest.raises(ValueError):
        raise EndpointParseError("bad", source="Endpoint")


def test_rest_error_status_default_message():
    error = RestError(404)
    assert error.status == 404
    assert str(error) == "<RestClient> request: HTTP 404"
