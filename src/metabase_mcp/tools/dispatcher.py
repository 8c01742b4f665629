"""Tool dispatcher.

Receives ``(name, args)`` from the MCP layer, validates, ensures the Metabase
session, runs the handler and shapes the outcome into an envelope. Failures
are normalized into the gateway taxonomy and returned as ``ErrorEnvelope``;
they are never reported as a successful result.
"""

from __future__ import annotations

import logging
import time
from typing import Any, List, Mapping, Optional, Union

from metabase_mcp.core.errors import (
    GatewayError,
    InternalError,
    InvalidArgumentsError,
    normalize_error,
)
from metabase_mcp.core.responses import (
    ErrorEnvelope,
    ResultEnvelope,
    error_envelope,
    result_envelope,
)
from metabase_mcp.core.session import SessionManager
from metabase_mcp.tools.registry import CapabilityDescriptor, CapabilityRegistry

logger = logging.getLogger(__name__)

Envelope = Union[ResultEnvelope, ErrorEnvelope]


class Dispatcher:
    """Routes tool invocations through the registry and session manager."""

    def __init__(self, registry: CapabilityRegistry, session: SessionManager) -> None:
        self.registry = registry
        self.session = session

    def list_descriptors(self) -> List[CapabilityDescriptor]:
        return self.registry.list_descriptors()

    async def invoke(self, name: str, args: Optional[Mapping[str, Any]] = None) -> Envelope:
        """Run tool *name* with *args* and return its envelope.

        Argument checks run before authentication so invalid input never
        causes network traffic.
        """
        started = time.perf_counter()
        try:
            payload = self._coerce_args(name, args)
            capability = self.registry.get(name)
            capability.validate(payload)
            await self.session.ensure_authenticated()
            result = await capability.handler(payload)
        except Exception as exc:
            error = normalize_error(exc)
            self._log_failure(name, error, exc)
            return error_envelope(error)

        logger.debug("Tool %s completed in %.1fms", name, (time.perf_counter() - started) * 1000)
        return result_envelope(result)

    @staticmethod
    def _coerce_args(name: str, args: Optional[Mapping[str, Any]]) -> dict:
        if args is None:
            return {}
        if not isinstance(args, Mapping):
            raise InvalidArgumentsError(
                f"Arguments for {name} must be an object, got {type(args).__name__}",
                tool=name,
            )
        # Handlers may normalise in place; never mutate the caller's mapping.
        return dict(args)

    @staticmethod
    def _log_failure(name: str, error: GatewayError, exc: BaseException) -> None:
        if isinstance(error, InternalError):
            logger.error("Tool %s failed with unexpected error", name, exc_info=exc)
        else:
            logger.warning("Tool %s failed: %s: %s", name, error.code.value, error.message)
