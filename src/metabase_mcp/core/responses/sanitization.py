"""
Secret redaction and error message extraction for Metabase responses.

SECURITY: everything that may end up in logs or in an error envelope goes
through :func:`redact_secrets`; API keys, passwords and session tokens never
leave the process verbatim.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

# Regex to detect potential API keys / session tokens in strings
_SECRET_PATTERN = re.compile(
    r"(?i)"
    r"(?:"
    r"(?:api[_-]?key|token|session|bearer|authorization|secret|password|credential)"
    r"[\"']?[\s:=]+"
    r")"
    r"['\"]?([^\s'\",}]{8,})['\"]?",
)

# Headers that should never appear in logs/errors
_SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "x-api-key",
        "x-metabase-session",
        "cookie",
        "set-cookie",
        "proxy-authorization",
    }
)

_MAX_MESSAGE_LENGTH = 500


def redact_secrets(text: str) -> str:
    """Remove API keys and sensitive tokens from a text string.

    Scans for patterns like ``api_key=...``, ``password: ...``,
    ``"session": "..."`` and replaces the secret portion with ``****``.
    """
    if not text:
        return text

    def _replace(match: re.Match[str]) -> str:
        full = match.group(0)
        secret = match.group(1)
        return full.replace(secret, "****")

    return _SECRET_PATTERN.sub(_replace, text)


def redact_headers(headers: Any) -> dict[str, str]:
    """Return a copy of *headers* with sensitive values redacted."""
    result: dict[str, str] = {}
    for key, value in dict(headers).items():
        if key.lower() in _SENSITIVE_HEADERS:
            result[key] = "****"
        else:
            result[key] = value
    return result


def extract_error_message(response: "httpx.Response") -> str:
    """Extract and redact an error message from a Metabase error response.

    Metabase answers errors as plain text, as ``{"message": ...}``, or as
    ``{"errors": {field: reason}}`` for validation failures.
    """
    try:
        data = response.json()
    except ValueError:
        text = response.text[:_MAX_MESSAGE_LENGTH] if response.text else ""
        return redact_secrets(text) or response.reason_phrase or "Unknown error"

    if isinstance(data, dict):
        message = data.get("message")
        errors = data.get("errors")
        if isinstance(errors, dict) and errors:
            rendered = "; ".join(f"{key}: {value}" for key, value in errors.items())
            message = f"{message} ({rendered})" if message else rendered
        if not message:
            message = data.get("error") or str(data)
    else:
        message = str(data)

    return redact_secrets(str(message)[:_MAX_MESSAGE_LENGTH])
