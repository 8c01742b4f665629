"""Gateway error taxonomy.

Every failure a caller can observe is one of these classes. Raw transport,
HTTP and programming errors are mapped onto them by
:func:`metabase_mcp.core.errors.base.normalize_error`.
"""

from typing import Any, Dict, Optional

from metabase_mcp.core.responses.types import ErrorCode


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Human-readable error description
        code: Taxonomy code reported to the caller
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        """Machine-readable context for the error envelope."""
        return {}


class ConfigurationError(GatewayError):
    """Raised at startup for missing credentials or a conflicting tool catalog."""

    code = ErrorCode.CONFIGURATION_ERROR


class AuthenticationError(GatewayError):
    """Raised when the username/password session exchange fails.

    Not retried by the session manager; the next call starts a new exchange.
    """

    code = ErrorCode.AUTHENTICATION_ERROR

    def __init__(
        self,
        message: str = "Failed to authenticate with Metabase",
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        super().__init__(message)


class InvalidArgumentsError(GatewayError):
    """Raised before any network call when tool arguments are missing or malformed."""

    code = ErrorCode.INVALID_ARGUMENTS

    def __init__(self, message: str, *, field: Optional[str] = None, tool: Optional[str] = None):
        self.field = field
        self.tool = tool
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {}
        if self.field:
            details["field"] = self.field
        if self.tool:
            details["tool"] = self.tool
        return details


class UnknownCapabilityError(GatewayError):
    """Raised when dispatching a tool name that is not in the catalog."""

    code = ErrorCode.UNKNOWN_CAPABILITY

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")

    def details(self) -> Dict[str, Any]:
        return {"tool": self.name}


class TransportError(GatewayError):
    """Raised when Metabase could not be reached (connect, read, timeout)."""

    code = ErrorCode.TRANSPORT_ERROR

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class RemoteRejectedError(GatewayError):
    """Raised when Metabase answered with a non-2xx status."""

    code = ErrorCode.REMOTE_REJECTED

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ):
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {"status_code": self.status_code}
        if self.method and self.path:
            details["request"] = f"{self.method} {self.path}"
        return details


class InternalError(GatewayError):
    """Catch-all for unexpected failures; preserves the original message."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, error_type: Optional[str] = None):
        self.error_type = error_type
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        return {"error_type": self.error_type} if self.error_type else {}
