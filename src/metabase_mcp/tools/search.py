"""Search, activity and dataset export tools."""

from __future__ import annotations

from typing import Any

from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.dashboards import EXPORT_FORMATS
from metabase_mcp.tools.param_schema import Bool, Dict_, List_, Num, Str, ids_param, pick
from metabase_mcp.tools.registry import CapabilityRegistry

SEARCH_MODELS = ("card", "dashboard", "collection", "database", "table", "dataset", "metric")
RECENTS_CONTEXTS = ("views", "selections")


def build_search_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("search")
    client = ctx.client

    @registry.capability(
        "search_content",
        "Search across all Metabase content",
        {
            "query": Str(required=True, description="Search query"),
            "models": List_(
                items={"type": "string", "enum": list(SEARCH_MODELS)},
                description="Filter by content types",
            ),
            "archived": Bool(description="Search archived items"),
            "table_db_id": Num(integer_only=True, description="Only search tables in this database"),
        },
    )
    async def search_content(args: dict) -> Any:
        params = {"q": args["query"], "models": ids_param(args.get("models"))}
        params.update(pick(args, "archived", "table_db_id"))
        return await client.get("/api/search", params=params)

    return registry


def build_activity_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("activity")
    client = ctx.client

    @registry.capability("get_most_recently_viewed_dashboard", "Get the dashboard the current user viewed last")
    async def get_most_recently_viewed_dashboard(args: dict) -> Any:
        return await client.get("/api/activity/most_recently_viewed_dashboard")

    @registry.capability("get_popular_items", "Get popular items across the instance")
    async def get_popular_items(args: dict) -> Any:
        return await client.get("/api/activity/popular_items")

    @registry.capability("get_recent_views", "Get items the current user viewed recently")
    async def get_recent_views(args: dict) -> Any:
        return await client.get("/api/activity/recent_views")

    @registry.capability(
        "get_recents",
        "Get recent views and selections for the current user",
        {
            "context": List_(
                required=True,
                items={"type": "string", "enum": list(RECENTS_CONTEXTS)},
                min_items=1,
                description="Which recents to return",
            ),
            "include_metadata": Bool(default=False, description="Include item metadata"),
        },
    )
    async def get_recents(args: dict) -> Any:
        # httpx repeats a list-valued parameter once per element.
        params = {"context": args["context"], "include_metadata": args["include_metadata"]}
        return await client.get("/api/activity/recents", params=params)

    @registry.capability(
        "post_recents",
        "Record a recent selection for the current user",
        {
            "model": Str(required=True, description="Model of the selected item, e.g. card"),
            "model_id": Num(required=True, integer_only=True, description="ID of the selected item"),
            "context": Str(default="selection", description="Recents context"),
        },
    )
    async def post_recents(args: dict) -> Any:
        return await client.post("/api/activity/recents", pick(args, "model", "model_id", "context"))

    return registry


def build_dataset_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("dataset")
    client = ctx.client

    @registry.capability(
        "export_dataset",
        "Run a query and export its results in the given format",
        {
            "export_format": Str(required=True, choices=EXPORT_FORMATS, description="Export format"),
            "query": Dict_(required=True, description="Dataset query (native or MBQL)"),
            "format_rows": Bool(default=False, description="Apply column formatting to the rows"),
            "pivot_results": Bool(default=False, description="Export pivoted results"),
            "visualization_settings": Dict_(description="Visualization settings applied to the export"),
        },
    )
    async def export_dataset(args: dict) -> Any:
        body = {
            "format_rows": args["format_rows"],
            "pivot_results": args["pivot_results"],
            "query": args["query"],
            "visualization_settings": args.get("visualization_settings") or {},
        }
        return await client.post(f"/api/dataset/{args['export_format']}", body)

    return registry
