"""The full tool catalog, composed from the category sub-registries."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from metabase_mcp.tools.cards import build_card_tools
from metabase_mcp.tools.collections import build_collection_tools
from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.dashboards import build_dashboard_tools
from metabase_mcp.tools.databases import build_database_tools
from metabase_mcp.tools.registry import CapabilityRegistry
from metabase_mcp.tools.search import build_activity_tools, build_dataset_tools, build_search_tools
from metabase_mcp.tools.tables import build_table_tools
from metabase_mcp.tools.users import build_permission_tools, build_user_tools

logger = logging.getLogger(__name__)

CategoryBuilder = Callable[[ToolContext], CapabilityRegistry]

# Registration order is the advertised order.
CATEGORY_BUILDERS: Sequence[CategoryBuilder] = (
    build_dashboard_tools,
    build_card_tools,
    build_database_tools,
    build_table_tools,
    build_collection_tools,
    build_user_tools,
    build_permission_tools,
    build_search_tools,
    build_activity_tools,
    build_dataset_tools,
)


def build_catalog(ctx: ToolContext, disabled_tools: Iterable[str] = ()) -> CapabilityRegistry:
    """Compose every category into one flat registry.

    Raises:
        ConfigurationError: two categories register the same tool name.
    """
    catalog = CapabilityRegistry.compose(*(build(ctx) for build in CATEGORY_BUILDERS))
    disabled = list(disabled_tools)
    if disabled:
        catalog = catalog.without(disabled)
    logger.debug(
        "Tool catalog ready: %d tools in %d categories",
        len(catalog),
        len(catalog.categories()),
    )
    return catalog
