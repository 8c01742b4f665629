"""MCP server wiring.

Builds the gateway (client, session manager, catalog, dispatcher) from a
``ServerConfig`` and exposes it over the low-level MCP server: ``tools/list``
advertises the catalog and ``tools/call`` runs the dispatcher. Error
envelopes are returned as ``isError`` results whose text is the JSON
envelope.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import anyio
import httpx
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from metabase_mcp.config import ServerConfig
from metabase_mcp.core.client import MetabaseClient
from metabase_mcp.core.credentials import resolve_credential
from metabase_mcp.core.responses import ErrorEnvelope, ResultEnvelope
from metabase_mcp.core.session import SessionManager
from metabase_mcp.tools.catalog import build_catalog
from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


@dataclass
class Gateway:
    """Everything one server process owns."""

    config: ServerConfig
    client: MetabaseClient
    session: SessionManager
    dispatcher: Dispatcher

    async def aclose(self) -> None:
        await self.client.aclose()


def create_gateway(
    config: ServerConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Gateway:
    """Assemble the gateway.

    Raises:
        ConfigurationError: missing URL or credentials, or a duplicate tool name.
    """
    config.validate()
    credential = resolve_credential(config)
    client = MetabaseClient(config.base_url, timeout=config.request_timeout, transport=transport)
    session = SessionManager(credential, client)
    catalog = build_catalog(ToolContext.for_client(client), config.disabled_tools)
    logger.info("Registered %d Metabase tools for %s", len(catalog), config.base_url)
    return Gateway(
        config=config,
        client=client,
        session=session,
        dispatcher=Dispatcher(catalog, session),
    )


def to_call_tool_result(envelope: ResultEnvelope | ErrorEnvelope) -> types.CallToolResult:
    if isinstance(envelope, ErrorEnvelope):
        text = json.dumps(envelope.to_dict(), indent=2, ensure_ascii=False)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=text)],
            isError=True,
        )
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=envelope.text)],
        isError=False,
    )


def create_server(gateway: Gateway) -> Server:
    """Bind the dispatcher to a low-level MCP server."""
    config = gateway.config
    server: Server = Server(config.server_name, version=config.server_version)
    dispatcher = gateway.dispatcher

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=descriptor.name,
                description=descriptor.description,
                inputSchema=dict(descriptor.input_schema),
            )
            for descriptor in dispatcher.list_descriptors()
        ]

    # Arguments are checked by the dispatcher so failures come back as
    # error envelopes rather than SDK validation text.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        envelope = await dispatcher.invoke(name, arguments)
        return to_call_tool_result(envelope)

    return server


async def serve_stdio(gateway: Gateway) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    server = create_server(gateway)
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Starting %s %s on stdio", gateway.config.server_name, gateway.config.server_version)
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await gateway.aclose()


def run_stdio(gateway: Gateway) -> None:
    anyio.run(serve_stdio, gateway)
