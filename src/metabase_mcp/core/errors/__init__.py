"""Unified error hierarchy for metabase-mcp.

Usage:
    from metabase_mcp.core.errors import InvalidArgumentsError, normalize_error
"""

from metabase_mcp.core.errors.gateway import (
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    InternalError,
    InvalidArgumentsError,
    RemoteRejectedError,
    TransportError,
    UnknownCapabilityError,
)
from metabase_mcp.core.errors.base import ERROR_MAPPINGS, normalize_error

__all__ = [
    "ERROR_MAPPINGS",
    "normalize_error",
    "GatewayError",
    "ConfigurationError",
    "AuthenticationError",
    "InvalidArgumentsError",
    "UnknownCapabilityError",
    "TransportError",
    "RemoteRejectedError",
    "InternalError",
]
