"""Tests for normalize_error and the gateway error taxonomy."""

from __future__ import annotations

import httpx
import pytest

from metabase_mcp.core.errors import (
    AuthenticationError,
    ConfigurationError,
    InternalError,
    InvalidArgumentsError,
    RemoteRejectedError,
    TransportError,
    UnknownCapabilityError,
    normalize_error,
)
from metabase_mcp.core.responses import ErrorCode, error_envelope
from metabase_mcp.core.responses.sanitization import extract_error_message, redact_secrets


def _status_error(status: int, **response_kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("PUT", "https://metabase.test/api/dashboard/3")
    response = httpx.Response(status, request=request, **response_kwargs)
    return httpx.HTTPStatusError("rejected", request=request, response=response)


class TestNormalizeError:
    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("no url"),
            AuthenticationError(),
            InvalidArgumentsError("missing", field="card_id"),
            UnknownCapabilityError("nope"),
        ],
    )
    def test_gateway_errors_pass_through(self, error):
        assert normalize_error(error) is error

    def test_status_error_becomes_remote_rejected(self):
        error = normalize_error(_status_error(404, json={"message": "Not found."}))

        assert isinstance(error, RemoteRejectedError)
        assert error.code is ErrorCode.REMOTE_REJECTED
        assert error.status_code == 404
        assert "Not found." in error.message
        assert error.details() == {"status_code": 404, "request": "PUT /api/dashboard/3"}

    def test_unauthorized_is_remote_rejected_not_reauthenticated(self):
        error = normalize_error(_status_error(401, text="Unauthenticated"))

        assert isinstance(error, RemoteRejectedError)
        assert error.status_code == 401

    def test_connect_error_becomes_transport_error(self):
        request = httpx.Request("GET", "https://metabase.test/api/card")
        error = normalize_error(httpx.ConnectError("connection refused", request=request))

        assert isinstance(error, TransportError)
        assert error.code is ErrorCode.TRANSPORT_ERROR
        assert "GET /api/card" in error.message
        assert "connection refused" in error.message

    def test_timeout_becomes_transport_error(self):
        request = httpx.Request("GET", "https://metabase.test/api/card")
        assert isinstance(normalize_error(httpx.ReadTimeout("slow", request=request)), TransportError)

    def test_http_error_without_request_still_maps(self):
        error = normalize_error(httpx.HTTPError("odd failure"))
        assert isinstance(error, TransportError)
        assert "odd failure" in error.message

    def test_anything_else_becomes_internal_error(self):
        error = normalize_error(ZeroDivisionError("division by zero"))

        assert isinstance(error, InternalError)
        assert error.message == "division by zero"
        assert error.details() == {"error_type": "ZeroDivisionError"}

    def test_internal_error_message_is_redacted(self):
        error = normalize_error(ValueError("bad token: abcdef1234567890"))
        assert "abcdef1234567890" not in error.message


class TestErrorEnvelope:
    def test_unknown_capability_envelope(self):
        envelope = error_envelope(UnknownCapabilityError("unknown_op"))

        assert envelope.code is ErrorCode.UNKNOWN_CAPABILITY
        assert envelope.message == "Unknown tool: unknown_op"
        assert envelope.to_dict() == {
            "code": "UNKNOWN_CAPABILITY",
            "message": "Unknown tool: unknown_op",
            "details": {"tool": "unknown_op"},
        }

    def test_details_omitted_when_empty(self):
        envelope = error_envelope(ConfigurationError("no url"))
        assert envelope.details is None
        assert "details" not in envelope.to_dict()


class TestSanitization:
    def test_redacts_key_value_secrets(self):
        text = redact_secrets('{"password": "hunter2hunter2", "api_key": "mb_abcdefgh12345"}')
        assert "hunter2hunter2" not in text
        assert "mb_abcdefgh12345" not in text

    def test_extracts_metabase_message(self):
        response = httpx.Response(400, json={"message": "Card does not exist"})
        assert extract_error_message(response) == "Card does not exist"

    def test_extracts_field_errors(self):
        response = httpx.Response(400, json={"errors": {"name": "value must be a non-blank string."}})
        assert "name" in extract_error_message(response)

    def test_falls_back_to_text(self):
        response = httpx.Response(500, text="Internal Server Error")
        assert extract_error_message(response) == "Internal Server Error"
