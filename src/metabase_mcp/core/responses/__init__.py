"""
Standard response contracts for tool invocations.

Sub-modules:
    types           - ErrorCode, ResultEnvelope, ErrorEnvelope
    builders        - result_envelope, error_envelope, serialize_result
    sanitization    - redact_secrets, redact_headers, extract_error_message
"""

from metabase_mcp.core.responses.types import (  # noqa: F401
    ErrorCode,
    ErrorEnvelope,
    ResultEnvelope,
)

from metabase_mcp.core.responses.builders import (  # noqa: F401
    error_envelope,
    result_envelope,
    serialize_result,
)

from metabase_mcp.core.responses.sanitization import (  # noqa: F401
    extract_error_message,
    redact_headers,
    redact_secrets,
)
