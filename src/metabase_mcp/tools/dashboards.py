"""Dashboard tools.

Adding, removing and updating dashboard cards go through fallback chains:
the dashcard endpoints moved between Metabase releases, and the oldest
servers only accept a full rewrite of the dashboard's card list.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from metabase_mcp.core.fallback import (
    FallbackAttempt,
    ReadModifyWriteAttempt,
    append_item,
    extract_dashcards,
    remove_item,
    update_item,
)
from metabase_mcp.tools.context import ToolContext, seg
from metabase_mcp.tools.param_schema import (
    AtLeastOne,
    Bool,
    Dict_,
    Id,
    List_,
    Num,
    Str,
    omit,
    pick,
)
from metabase_mcp.tools.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

EXPORT_FORMATS = frozenset({"csv", "xlsx", "json"})

_DASHBOARD_ID = Num(required=True, integer_only=True, description="ID of the dashboard")
_DASHCARD_ID = Num(required=True, integer_only=True, description="ID of the dashboard card (not the card itself)")
_CARD_ID = Num(required=True, integer_only=True, description="ID of the card")
_PARAM_KEY = Str(required=True, description="Parameter key")
_OBJECT_LIST = {"type": "object"}

# Fields a dashcard update may carry.
_DASHCARD_FIELDS = (
    "card_id",
    "row",
    "col",
    "size_x",
    "size_y",
    "parameter_mappings",
    "visualization_settings",
    "series",
)

_DASHBOARD_UPDATE_FIELDS = ("name", "description", "parameters", "collection_id", "archived")


# ---------------------------------------------------------------------------
# Fallback payload builders (pure)
# ---------------------------------------------------------------------------


def _new_dashcard(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "card_id": params["card_id"],
        "row": params.get("row", 0),
        "col": params.get("col", 0),
        "size_x": params.get("size_x", 4),
        "size_y": params.get("size_y", 4),
        "parameter_mappings": params.get("parameter_mappings") or [],
        "visualization_settings": params.get("visualization_settings") or {},
    }


def _new_dashcard_camel(params: Mapping[str, Any]) -> Dict[str, Any]:
    card = _new_dashcard(params)
    return {
        "cardId": card["card_id"],
        "row": card["row"],
        "col": card["col"],
        "sizeX": card["size_x"],
        "sizeY": card["size_y"],
        "parameter_mappings": card["parameter_mappings"],
        "visualization_settings": card["visualization_settings"],
    }


def _cards_with_new_dashcard(dashboard: Any, params: Mapping[str, Any]) -> Dict[str, Any]:
    # -1 marks a card the server has not assigned an id to yet.
    new_card = {"id": -1, **_new_dashcard(params)}
    return {"cards": append_item(extract_dashcards(dashboard), new_card)}


def _cards_without_dashcard(dashboard: Any, params: Mapping[str, Any]) -> Dict[str, Any]:
    return {"cards": remove_item(extract_dashcards(dashboard), params["dashcard_id"])}


def _dashcard_updates(params: Mapping[str, Any]) -> Dict[str, Any]:
    return pick(params, *_DASHCARD_FIELDS)


def _cards_with_updated_dashcard(dashboard: Any, params: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "cards": update_item(
            extract_dashcards(dashboard),
            params["dashcard_id"],
            _dashcard_updates(params),
        )
    }


ADD_DASHCARD_ATTEMPTS = (
    FallbackAttempt("POST", "/api/dashboard/{dashboard_id}/cards", _new_dashcard_camel),
    ReadModifyWriteAttempt(
        "PUT",
        "/api/dashboard/{dashboard_id}/cards",
        read_path_template="/api/dashboard/{dashboard_id}",
        transform=_cards_with_new_dashcard,
    ),
    FallbackAttempt("POST", "/api/dashboard/{dashboard_id}/dashcard", _new_dashcard),
)

REMOVE_DASHCARD_ATTEMPTS = (
    FallbackAttempt("DELETE", "/api/dashboard/{dashboard_id}/cards/{dashcard_id}"),
    FallbackAttempt("DELETE", "/api/dashboard/{dashboard_id}/dashcard/{dashcard_id}"),
    ReadModifyWriteAttempt(
        "PUT",
        "/api/dashboard/{dashboard_id}/cards",
        read_path_template="/api/dashboard/{dashboard_id}",
        transform=_cards_without_dashcard,
    ),
)

UPDATE_DASHCARD_ATTEMPTS = (
    FallbackAttempt("PUT", "/api/dashboard/{dashboard_id}/cards/{dashcard_id}", _dashcard_updates),
    FallbackAttempt("PUT", "/api/dashboard/{dashboard_id}/dashcard/{dashcard_id}", _dashcard_updates),
    ReadModifyWriteAttempt(
        "PUT",
        "/api/dashboard/{dashboard_id}/cards",
        read_path_template="/api/dashboard/{dashboard_id}",
        transform=_cards_with_updated_dashcard,
    ),
)


def build_dashboard_tools(ctx: ToolContext) -> CapabilityRegistry:
    """Register dashboard tools in a ``dashboard`` sub-registry."""
    registry = CapabilityRegistry("dashboard")
    client = ctx.client

    @registry.capability("list_dashboards", "List all dashboards in Metabase")
    async def list_dashboards(args: dict) -> Any:
        return await client.get("/api/dashboard")

    @registry.capability(
        "get_dashboard",
        "Get a specific dashboard by ID",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def get_dashboard(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}")

    @registry.capability(
        "create_dashboard",
        "Create a new Metabase dashboard",
        {
            "name": Str(required=True, description="Name of the dashboard"),
            "description": Str(description="Optional description for the dashboard"),
            "parameters": List_(items=_OBJECT_LIST, description="Optional parameters for the dashboard"),
            "collection_id": Id(description="Optional ID of the collection to save the dashboard in"),
        },
    )
    async def create_dashboard(args: dict) -> Any:
        body = pick(args, "name", "description", "parameters", "collection_id")
        return await client.post("/api/dashboard", body)

    @registry.capability(
        "update_dashboard",
        "Update an existing Metabase dashboard",
        {
            "dashboard_id": Num(required=True, integer_only=True, description="ID of the dashboard to update"),
            "name": Str(description="New name for the dashboard"),
            "description": Str(description="New description for the dashboard"),
            "parameters": List_(items=_OBJECT_LIST, description="New parameters for the dashboard"),
            "collection_id": Id(description="New collection ID"),
            "archived": Bool(description="Set to true to archive the dashboard"),
        },
        cross_field_rules=[AtLeastOne(_DASHBOARD_UPDATE_FIELDS)],
    )
    async def update_dashboard(args: dict) -> Any:
        return await client.put(f"/api/dashboard/{args['dashboard_id']}", omit(args, "dashboard_id"))

    @registry.capability(
        "delete_dashboard",
        "Delete a Metabase dashboard (archives it unless hard_delete is true)",
        {
            "dashboard_id": Num(required=True, integer_only=True, description="ID of the dashboard to delete"),
            "hard_delete": Bool(default=False, description="Set to true for hard delete, false (default) for archive"),
        },
    )
    async def delete_dashboard(args: dict) -> Any:
        dashboard_id = args["dashboard_id"]
        if args["hard_delete"]:
            await client.delete(f"/api/dashboard/{dashboard_id}")
            return f"Dashboard {dashboard_id} permanently deleted."
        await client.put(f"/api/dashboard/{dashboard_id}", {"archived": True})
        return f"Dashboard {dashboard_id} archived."

    @registry.capability(
        "get_dashboard_cards",
        "Get all cards in a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def get_dashboard_cards(args: dict) -> Any:
        dashboard = await client.get(f"/api/dashboard/{args['dashboard_id']}")
        return extract_dashcards(dashboard)

    @registry.capability(
        "add_card_to_dashboard",
        "Add a card to a dashboard with positioning",
        {
            "dashboard_id": _DASHBOARD_ID,
            "card_id": Num(required=True, integer_only=True, description="ID of the card to add"),
            "row": Num(integer_only=True, min_val=0, default=0, description="Row position (0-based)"),
            "col": Num(integer_only=True, min_val=0, default=0, description="Column position (0-based)"),
            "size_x": Num(integer_only=True, min_val=1, default=4, description="Width in grid units"),
            "size_y": Num(integer_only=True, min_val=1, default=4, description="Height in grid units"),
            "parameter_mappings": List_(items=_OBJECT_LIST, description="Parameter mappings between dashboard and card"),
            "visualization_settings": Dict_(description="Visualization settings for the card on this dashboard"),
        },
    )
    async def add_card_to_dashboard(args: dict) -> Any:
        return await ctx.fallback.execute(ADD_DASHCARD_ATTEMPTS, args)

    @registry.capability(
        "remove_card_from_dashboard",
        "Remove a card from a dashboard",
        {"dashboard_id": _DASHBOARD_ID, "dashcard_id": _DASHCARD_ID},
    )
    async def remove_card_from_dashboard(args: dict) -> Any:
        await ctx.fallback.execute(REMOVE_DASHCARD_ATTEMPTS, args)
        return f"Card with dashcard ID {args['dashcard_id']} removed from dashboard {args['dashboard_id']}"

    @registry.capability(
        "update_dashboard_card",
        "Update card position, size, and settings on a dashboard",
        {
            "dashboard_id": _DASHBOARD_ID,
            "dashcard_id": _DASHCARD_ID,
            "card_id": Num(integer_only=True, description="Replace the card shown in this dashcard"),
            "row": Num(integer_only=True, min_val=0, description="New row position"),
            "col": Num(integer_only=True, min_val=0, description="New column position"),
            "size_x": Num(integer_only=True, min_val=1, description="New width in grid units"),
            "size_y": Num(integer_only=True, min_val=1, description="New height in grid units"),
            "parameter_mappings": List_(items=_OBJECT_LIST, description="Updated parameter mappings"),
            "visualization_settings": Dict_(description="Updated visualization settings"),
            "series": List_(items=_OBJECT_LIST, description="Additional series cards"),
        },
        cross_field_rules=[AtLeastOne(_DASHCARD_FIELDS)],
    )
    async def update_dashboard_card(args: dict) -> Any:
        return await ctx.fallback.execute(UPDATE_DASHCARD_ATTEMPTS, args)

    @registry.capability(
        "put_dashboard_cards",
        "Update all cards in a dashboard",
        {
            "dashboard_id": _DASHBOARD_ID,
            "cards": List_(required=True, items=_OBJECT_LIST, description="Array of dashboard cards"),
        },
    )
    async def put_dashboard_cards(args: dict) -> Any:
        return await client.put(f"/api/dashboard/{args['dashboard_id']}/cards", {"cards": args["cards"]})

    @registry.capability("get_dashboard_embeddable", "Get embeddable dashboards")
    async def get_dashboard_embeddable(args: dict) -> Any:
        return await client.get("/api/dashboard/embeddable")

    @registry.capability("get_dashboard_public", "Get public dashboards")
    async def get_dashboard_public(args: dict) -> Any:
        return await client.get("/api/dashboard/public")

    @registry.capability(
        "get_dashboard_params_valid_filter_fields",
        "Get valid filter fields for dashboard parameters",
        {
            "filtered": List_(required=True, items={"type": "integer"}, description="Field IDs that are being filtered"),
            "filtering": List_(items={"type": "integer"}, description="Field IDs that are doing the filtering"),
        },
    )
    async def get_dashboard_params_valid_filter_fields(args: dict) -> Any:
        params = {"filtered": args["filtered"], "filtering": args.get("filtering")}
        return await client.get("/api/dashboard/params/valid-filter-fields", params=params)

    @registry.capability(
        "post_dashboard_public_link",
        "Create a public link for a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def post_dashboard_public_link(args: dict) -> Any:
        return await client.post(f"/api/dashboard/{args['dashboard_id']}/public_link")

    @registry.capability(
        "delete_dashboard_public_link",
        "Delete a public link for a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def delete_dashboard_public_link(args: dict) -> Any:
        return await client.delete(f"/api/dashboard/{args['dashboard_id']}/public_link")

    @registry.capability(
        "post_dashboard_copy",
        "Copy a dashboard",
        {
            "from_dashboard_id": Num(required=True, integer_only=True, description="ID of the dashboard to copy from"),
            "name": Str(description="Name for the new dashboard"),
            "description": Str(description="Description for the new dashboard"),
            "collection_id": Id(description="ID of the collection to save the copy in"),
            "is_deep_copy": Bool(description="Also duplicate the cards instead of reusing them"),
        },
    )
    async def post_dashboard_copy(args: dict) -> Any:
        body = pick(args, "name", "description", "collection_id", "is_deep_copy")
        return await client.post(f"/api/dashboard/{args['from_dashboard_id']}/copy", body)

    @registry.capability(
        "post_dashboard_save",
        "Save a denormalized dashboard definition",
        {
            "name": Str(required=True, description="Name of the dashboard"),
            "description": Str(description="Description of the dashboard"),
            "parameters": List_(items=_OBJECT_LIST, description="Dashboard parameters"),
            "cards": List_(items=_OBJECT_LIST, description="Dashboard cards"),
        },
    )
    async def post_dashboard_save(args: dict) -> Any:
        return await client.post("/api/dashboard/save", pick(args, "name", "description", "parameters", "cards"))

    @registry.capability(
        "post_dashboard_save_to_collection",
        "Save a denormalized dashboard definition into a collection",
        {
            "parent_collection_id": Id(required=True, description="ID of the parent collection"),
            "name": Str(required=True, description="Name of the dashboard"),
            "description": Str(description="Description of the dashboard"),
            "parameters": List_(items=_OBJECT_LIST, description="Dashboard parameters"),
            "cards": List_(items=_OBJECT_LIST, description="Dashboard cards"),
        },
    )
    async def post_dashboard_save_to_collection(args: dict) -> Any:
        body = pick(args, "name", "description", "parameters", "cards")
        return await client.post(
            f"/api/dashboard/save/collection/{seg(args['parent_collection_id'])}",
            body,
        )

    @registry.capability(
        "get_dashboard_items",
        "Get all items in a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def get_dashboard_items(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}/items")

    @registry.capability(
        "get_dashboard_related",
        "Get related items for a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def get_dashboard_related(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}/related")

    @registry.capability(
        "get_dashboard_query_metadata",
        "Get query metadata for a dashboard",
        {"dashboard_id": _DASHBOARD_ID},
    )
    async def get_dashboard_query_metadata(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}/query_metadata")

    @registry.capability(
        "get_dashboard_param_values",
        "Get values for a dashboard parameter",
        {"dashboard_id": _DASHBOARD_ID, "param_key": _PARAM_KEY},
    )
    async def get_dashboard_param_values(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}/params/{seg(args['param_key'])}/values")

    @registry.capability(
        "get_dashboard_param_search",
        "Search dashboard parameter values",
        {
            "dashboard_id": _DASHBOARD_ID,
            "param_key": _PARAM_KEY,
            "query": Str(required=True, description="Search query"),
        },
    )
    async def get_dashboard_param_search(args: dict) -> Any:
        return await client.get(
            f"/api/dashboard/{args['dashboard_id']}/params/{seg(args['param_key'])}/search/{seg(args['query'])}"
        )

    @registry.capability(
        "get_dashboard_param_remapping",
        "Get the remapped display value for a dashboard parameter value",
        {
            "dashboard_id": _DASHBOARD_ID,
            "param_key": _PARAM_KEY,
            "value": Str(required=True, description="Parameter value to remap"),
        },
    )
    async def get_dashboard_param_remapping(args: dict) -> Any:
        return await client.get(
            f"/api/dashboard/{args['dashboard_id']}/params/{seg(args['param_key'])}/remapping",
            params={"value": args["value"]},
        )

    @registry.capability(
        "post_dashboard_query",
        "Execute a query for a dashboard card",
        {
            "dashboard_id": _DASHBOARD_ID,
            "dashcard_id": _DASHCARD_ID,
            "card_id": _CARD_ID,
            "dashboard_load_id": Str(description="Dashboard load identifier"),
            "parameters": List_(items=_OBJECT_LIST, description="Query parameters"),
        },
    )
    async def post_dashboard_query(args: dict) -> Any:
        path = f"/api/dashboard/{args['dashboard_id']}/dashcard/{args['dashcard_id']}/card/{args['card_id']}/query"
        return await client.post(path, pick(args, "dashboard_load_id", "parameters"))

    @registry.capability(
        "post_dashboard_query_export",
        "Export dashboard card query results in the specified format",
        {
            "dashboard_id": _DASHBOARD_ID,
            "dashcard_id": _DASHCARD_ID,
            "card_id": _CARD_ID,
            "export_format": Str(required=True, choices=EXPORT_FORMATS, description="Export format"),
            "parameters": List_(items=_OBJECT_LIST, description="Query parameters"),
        },
    )
    async def post_dashboard_query_export(args: dict) -> Any:
        path = (
            f"/api/dashboard/{args['dashboard_id']}/dashcard/{args['dashcard_id']}"
            f"/card/{args['card_id']}/query/{args['export_format']}"
        )
        return await client.post(path, pick(args, "parameters"))

    @registry.capability(
        "post_dashboard_pivot_query",
        "Execute a pivot query for a dashboard card",
        {
            "dashboard_id": _DASHBOARD_ID,
            "dashcard_id": _DASHCARD_ID,
            "card_id": _CARD_ID,
            "parameters": List_(items=_OBJECT_LIST, description="Query parameters for the pivot"),
        },
    )
    async def post_dashboard_pivot_query(args: dict) -> Any:
        path = (
            f"/api/dashboard/pivot/{args['dashboard_id']}/dashcard/{args['dashcard_id']}"
            f"/card/{args['card_id']}/query"
        )
        return await client.post(path, pick(args, "parameters"))

    @registry.capability(
        "get_dashboard_execute",
        "Get the executable actions for a dashboard card",
        {"dashboard_id": _DASHBOARD_ID, "dashcard_id": _DASHCARD_ID},
    )
    async def get_dashboard_execute(args: dict) -> Any:
        return await client.get(f"/api/dashboard/{args['dashboard_id']}/dashcard/{args['dashcard_id']}/execute")

    @registry.capability(
        "post_dashboard_execute",
        "Execute the action bound to a dashboard card",
        {
            "dashboard_id": _DASHBOARD_ID,
            "dashcard_id": _DASHCARD_ID,
            "parameters": Dict_(description="Execution parameters"),
        },
    )
    async def post_dashboard_execute(args: dict) -> Any:
        path = f"/api/dashboard/{args['dashboard_id']}/dashcard/{args['dashcard_id']}/execute"
        return await client.post(path, pick(args, "parameters"))

    return registry
