"""Raw-failure to gateway-error mapping.

Provides a centralized mapping from low-level exception types to the gateway
taxonomy, enabling consistent error envelopes across every tool.

Usage:
    from metabase_mcp.core.errors.base import normalize_error

    try:
        result = await handler(args)
    except Exception as e:
        envelope = error_envelope(normalize_error(e))
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Type

import httpx

from metabase_mcp.core.errors.gateway import (
    GatewayError,
    InternalError,
    RemoteRejectedError,
    TransportError,
)
from metabase_mcp.core.responses.sanitization import extract_error_message, redact_secrets


def _from_status_error(exc: httpx.HTTPStatusError) -> GatewayError:
    response = exc.response
    request = exc.request
    detail = extract_error_message(response)
    return RemoteRejectedError(
        response.status_code,
        f"Metabase rejected {request.method} {request.url.path} with HTTP {response.status_code}: {detail}",
        method=request.method,
        path=request.url.path,
    )


def _from_transport_error(exc: httpx.HTTPError) -> GatewayError:
    reason = redact_secrets(str(exc)) or exc.__class__.__name__
    try:
        request = exc.request
        target = f" ({request.method} {request.url.path})"
    except RuntimeError:
        target = ""
    return TransportError(f"Could not reach Metabase{target}: {reason}", original_error=exc)


# Checked in order; the first isinstance match wins.
ERROR_MAPPINGS: Dict[Type[Exception], Callable[[Any], GatewayError]] = {
    httpx.HTTPStatusError: _from_status_error,
    httpx.TransportError: _from_transport_error,
    httpx.HTTPError: _from_transport_error,
}


def normalize_error(exc: BaseException) -> GatewayError:
    """Convert any failure into a gateway error.

    Gateway errors pass through unchanged, httpx failures are mapped via
    :data:`ERROR_MAPPINGS`, and anything else becomes an
    :class:`InternalError` carrying the original message.
    """
    if isinstance(exc, GatewayError):
        return exc

    for exc_type, convert in ERROR_MAPPINGS.items():
        if isinstance(exc, exc_type):
            return convert(exc)

    message = str(exc) or exc.__class__.__name__
    return InternalError(redact_secrets(message), error_type=exc.__class__.__name__)
