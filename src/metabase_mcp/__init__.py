"""MCP server exposing the Metabase REST API as tools."""

from metabase_mcp.config import _PACKAGE_VERSION as __version__  # noqa: F401
