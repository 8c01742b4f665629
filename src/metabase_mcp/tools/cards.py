"""Card (saved question) tools."""

from __future__ import annotations

from typing import Any

from metabase_mcp.tools.context import ToolContext, seg
from metabase_mcp.tools.dashboards import EXPORT_FORMATS
from metabase_mcp.tools.param_schema import Bool, Dict_, Id, List_, Num, Str, pick
from metabase_mcp.tools.registry import CapabilityRegistry

_CARD_ID = Num(required=True, integer_only=True, description="ID of the card")
_PARAM_KEY = Str(required=True, description="Parameter key")
_CARD_IDS = List_(required=True, items={"type": "integer"}, min_items=1, description="IDs of the cards to move")


def build_card_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("card")
    client = ctx.client

    @registry.capability(
        "list_cards",
        "List all questions/cards in Metabase",
        {"f": Str(choices=frozenset({"all", "mine", "bookmarked", "database", "table", "archived"}),
                  description="Optional filter for the card list")},
    )
    async def list_cards(args: dict) -> Any:
        return await client.get("/api/card", params=pick(args, "f"))

    @registry.capability("get_card", "Get a specific question/card by ID", {"card_id": _CARD_ID})
    async def get_card(args: dict) -> Any:
        return await client.get(f"/api/card/{args['card_id']}")

    @registry.capability(
        "create_card",
        "Create a new Metabase question (card)",
        {
            "name": Str(required=True, description="Name of the card"),
            "dataset_query": Dict_(required=True, description="The query for the card (native or MBQL)"),
            "display": Str(default="table", description="Display type (table, bar, line, ...)"),
            "visualization_settings": Dict_(description="Visualization settings for the card"),
            "description": Str(description="Optional description for the card"),
            "collection_id": Id(description="Optional ID of the collection to save the card in"),
        },
    )
    async def create_card(args: dict) -> Any:
        body = pick(
            args,
            "name",
            "dataset_query",
            "display",
            "description",
            "collection_id",
        )
        body["visualization_settings"] = args.get("visualization_settings") or {}
        return await client.post("/api/card", body)

    @registry.capability(
        "update_card",
        "Update an existing Metabase question (card)",
        {
            "card_id": _CARD_ID,
            "updated_fields": Dict_(required=True, min_keys=1, description="Fields to update on the card"),
            "delete_old_dashcards": Bool(description="Remove the card from dashboards it no longer fits"),
        },
    )
    async def update_card(args: dict) -> Any:
        return await client.put(
            f"/api/card/{args['card_id']}",
            args["updated_fields"],
            params=pick(args, "delete_old_dashcards"),
        )

    @registry.capability(
        "delete_card",
        "Delete a Metabase question (card); archives it unless hard_delete is true",
        {
            "card_id": _CARD_ID,
            "hard_delete": Bool(default=False, description="Set to true for hard delete, false (default) for archive"),
        },
    )
    async def delete_card(args: dict) -> Any:
        card_id = args["card_id"]
        if args["hard_delete"]:
            await client.delete(f"/api/card/{card_id}")
            return f"Card {card_id} permanently deleted."
        await client.put(f"/api/card/{card_id}", {"archived": True})
        return f"Card {card_id} archived."

    @registry.capability(
        "execute_card",
        "Execute a Metabase question/card and get results",
        {
            "card_id": _CARD_ID,
            "ignore_cache": Bool(default=False, description="Bypass the query cache"),
            "collection_preview": Bool(description="Run as a collection preview"),
            "dashboard_id": Num(integer_only=True, description="Dashboard the card is executed from"),
        },
    )
    async def execute_card(args: dict) -> Any:
        body = pick(args, "ignore_cache", "collection_preview", "dashboard_id")
        return await client.post(f"/api/card/{args['card_id']}/query", body)

    @registry.capability(
        "post_card_query_export",
        "Execute a card query and export the results in the given format",
        {
            "card_id": _CARD_ID,
            "export_format": Str(required=True, choices=EXPORT_FORMATS, description="Export format"),
            "parameters": Dict_(description="Query parameters"),
        },
    )
    async def post_card_query_export(args: dict) -> Any:
        return await client.post(
            f"/api/card/{args['card_id']}/query/{args['export_format']}",
            args.get("parameters") or {},
        )

    @registry.capability(
        "post_card_pivot_query",
        "Execute a pivot query for a card",
        {"card_id": _CARD_ID, "parameters": Dict_(description="Query parameters for the pivot")},
    )
    async def post_card_pivot_query(args: dict) -> Any:
        return await client.post(f"/api/card/pivot/{args['card_id']}/query", args.get("parameters") or {})

    @registry.capability("copy_card", "Copy a card", {"card_id": _CARD_ID})
    async def copy_card(args: dict) -> Any:
        return await client.post(f"/api/card/{args['card_id']}/copy")

    @registry.capability("get_card_dashboards", "Get dashboards that contain a card", {"card_id": _CARD_ID})
    async def get_card_dashboards(args: dict) -> Any:
        return await client.get(f"/api/card/{args['card_id']}/dashboards")

    @registry.capability("get_card_query_metadata", "Get query metadata for a card", {"card_id": _CARD_ID})
    async def get_card_query_metadata(args: dict) -> Any:
        return await client.get(f"/api/card/{args['card_id']}/query_metadata")

    @registry.capability("get_card_series", "Get cards compatible as series for a card", {"card_id": _CARD_ID})
    async def get_card_series(args: dict) -> Any:
        return await client.get(f"/api/card/{args['card_id']}/series")

    @registry.capability("get_card_embeddable", "Get embeddable cards")
    async def get_card_embeddable(args: dict) -> Any:
        return await client.get("/api/card/embeddable")

    @registry.capability("get_card_public", "Get cards with public links")
    async def get_card_public(args: dict) -> Any:
        return await client.get("/api/card/public")

    @registry.capability("post_card_public_link", "Create a public link for a card", {"card_id": _CARD_ID})
    async def post_card_public_link(args: dict) -> Any:
        return await client.post(f"/api/card/{args['card_id']}/public_link")

    @registry.capability("delete_card_public_link", "Delete the public link of a card", {"card_id": _CARD_ID})
    async def delete_card_public_link(args: dict) -> Any:
        await client.delete(f"/api/card/{args['card_id']}/public_link")
        return {"success": True}

    @registry.capability(
        "get_card_param_values",
        "Get values for a card parameter",
        {"card_id": _CARD_ID, "param_key": _PARAM_KEY},
    )
    async def get_card_param_values(args: dict) -> Any:
        return await client.get(f"/api/card/{args['card_id']}/params/{seg(args['param_key'])}/values")

    @registry.capability(
        "get_card_param_search",
        "Search values for a card parameter",
        {"card_id": _CARD_ID, "param_key": _PARAM_KEY, "query": Str(required=True, description="Search query")},
    )
    async def get_card_param_search(args: dict) -> Any:
        return await client.get(
            f"/api/card/{args['card_id']}/params/{seg(args['param_key'])}/search/{seg(args['query'])}"
        )

    @registry.capability(
        "get_card_param_remapping",
        "Get the remapped display value for a card parameter value",
        {"card_id": _CARD_ID, "param_key": _PARAM_KEY, "value": Str(description="Parameter value to remap")},
    )
    async def get_card_param_remapping(args: dict) -> Any:
        return await client.get(
            f"/api/card/{args['card_id']}/params/{seg(args['param_key'])}/remapping",
            params=pick(args, "value"),
        )

    @registry.capability(
        "move_cards",
        "Move cards to a collection or dashboard",
        {
            "card_ids": _CARD_IDS,
            "collection_id": Id(description="Target collection ID"),
            "dashboard_id": Num(integer_only=True, description="Target dashboard ID"),
        },
    )
    async def move_cards(args: dict) -> Any:
        return await client.post("/api/cards/move", pick(args, "card_ids", "collection_id", "dashboard_id"))

    @registry.capability(
        "move_cards_to_collection",
        "Bulk move cards into a collection (omit collection_id for the root collection)",
        {"card_ids": _CARD_IDS, "collection_id": Id(nullable=True, description="Target collection ID")},
    )
    async def move_cards_to_collection(args: dict) -> Any:
        body = {"card_ids": args["card_ids"], "collection_id": args.get("collection_id")}
        return await client.post("/api/card/collections", body)

    return registry
