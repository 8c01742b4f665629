"""
Core types for MCP tool response contracts.

Defines the error codes and the two envelopes every tool invocation ends in:
``ResultEnvelope`` on success and ``ErrorEnvelope`` on failure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool failures.

    Codes follow SCREAMING_SNAKE_CASE convention and form a small, stable
    taxonomy that callers can branch on.
    """

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    UNKNOWN_CAPABILITY = "UNKNOWN_CAPABILITY"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    REMOTE_REJECTED = "REMOTE_REJECTED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class ResultEnvelope:
    """Successful tool result: a single text block.

    Attributes:
        text: Serialized payload (pretty-printed JSON or a plain message)
    """

    text: str

    is_error = False

    @property
    def content(self) -> List[Dict[str, str]]:
        return [{"type": "text", "text": self.text}]

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class ErrorEnvelope:
    """Failed tool result.

    Attributes:
        code: Taxonomy code from :class:`ErrorCode`
        message: Human-readable description of the failure
        details: Optional machine-readable context (status code, field, ...)
    """

    code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = field(default=None, compare=False)

    is_error = True

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload
