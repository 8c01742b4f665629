"""Shared state handed to every capability module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from metabase_mcp.core.client import MetabaseClient
from metabase_mcp.core.fallback import FallbackExecutor


@dataclass(frozen=True)
class ToolContext:
    """Collaborators available to capability handlers."""

    client: MetabaseClient
    fallback: FallbackExecutor

    @classmethod
    def for_client(cls, client: MetabaseClient) -> "ToolContext":
        return cls(client=client, fallback=FallbackExecutor(client))


def seg(value: Any) -> str:
    """Quote a caller-supplied value for use as one URL path segment."""
    return quote(str(value), safe="")
