"""
Envelope builder functions.

Provides result_envelope() and error_envelope(), the two constructors used by
the dispatcher to shape every tool outcome.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from metabase_mcp.core.responses.types import ErrorEnvelope, ResultEnvelope

if TYPE_CHECKING:
    from metabase_mcp.core.errors.gateway import GatewayError


def serialize_result(result: Any) -> str:
    """Render a handler result as text.

    Strings pass through untouched; everything else becomes two-space
    indented JSON.
    """
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def result_envelope(result: Any) -> ResultEnvelope:
    """Wrap a raw handler result in a ``ResultEnvelope``.

    Example:
        >>> result_envelope({"ok": True}).text
        '{\\n  "ok": true\\n}'
    """
    return ResultEnvelope(text=serialize_result(result))


def error_envelope(error: GatewayError) -> ErrorEnvelope:
    """Build the caller-facing envelope for a normalized gateway error."""
    return ErrorEnvelope(
        code=error.code,
        message=error.message,
        details=error.details() or None,
    )
