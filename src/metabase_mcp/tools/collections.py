"""Collection tools."""

from __future__ import annotations

from typing import Any

from metabase_mcp.tools.context import ToolContext, seg
from metabase_mcp.tools.param_schema import AtLeastOne, Bool, Id, Str, omit, pick
from metabase_mcp.tools.registry import CapabilityRegistry

# "root" addresses the root collection.
_COLLECTION_ID = Id(required=True, description="Collection ID, or 'root'")
_ITEM_MODELS = frozenset({"card", "dataset", "dashboard", "collection", "pulse", "snippet", "timeline", "metric"})


def build_collection_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("collection")
    client = ctx.client

    @registry.capability(
        "list_collections",
        "List all collections in Metabase",
        {"archived": Bool(default=False, description="Include archived collections")},
    )
    async def list_collections(args: dict) -> Any:
        params = {"archived": True} if args["archived"] else None
        return await client.get("/api/collection", params=params)

    @registry.capability("get_collection", "Get a collection by ID", {"collection_id": _COLLECTION_ID})
    async def get_collection(args: dict) -> Any:
        return await client.get(f"/api/collection/{seg(args['collection_id'])}")

    @registry.capability(
        "create_collection",
        "Create a new Metabase collection",
        {
            "name": Str(required=True, description="Name of the collection"),
            "description": Str(description="Description of the collection"),
            "color": Str(description="Color of the collection"),
            "parent_id": Id(description="Parent collection ID (omit for root level)"),
        },
    )
    async def create_collection(args: dict) -> Any:
        return await client.post("/api/collection", pick(args, "name", "description", "color", "parent_id"))

    @registry.capability(
        "update_collection",
        "Update an existing collection",
        {
            "collection_id": _COLLECTION_ID,
            "name": Str(description="New name of the collection"),
            "description": Str(description="New description of the collection"),
            "color": Str(description="New color of the collection"),
            "parent_id": Id(description="New parent collection ID"),
            "archived": Bool(description="Archive or unarchive the collection"),
        },
        cross_field_rules=[AtLeastOne(("name", "description", "color", "parent_id", "archived"))],
    )
    async def update_collection(args: dict) -> Any:
        return await client.put(f"/api/collection/{seg(args['collection_id'])}", omit(args, "collection_id"))

    @registry.capability("delete_collection", "Delete a collection", {"collection_id": _COLLECTION_ID})
    async def delete_collection(args: dict) -> Any:
        await client.delete(f"/api/collection/{seg(args['collection_id'])}")
        return f"Collection {args['collection_id']} deleted successfully"

    @registry.capability(
        "get_collection_items",
        "Get all items in a collection",
        {
            "collection_id": _COLLECTION_ID,
            "models": Str(choices=_ITEM_MODELS, description="Only return items of this model"),
            "archived": Bool(description="Return archived items"),
        },
    )
    async def get_collection_items(args: dict) -> Any:
        return await client.get(
            f"/api/collection/{seg(args['collection_id'])}/items",
            params=pick(args, "models", "archived"),
        )

    @registry.capability(
        "move_to_collection",
        "Move a card or dashboard into another collection",
        {
            "item_type": Str(required=True, choices=frozenset({"card", "dashboard"}), description="Type of item to move"),
            "item_id": Id(required=True, description="ID of the item to move"),
            "collection_id": Id(required=True, nullable=True, description="Target collection ID (null for root level)"),
        },
    )
    async def move_to_collection(args: dict) -> Any:
        path = f"/api/{args['item_type']}/{seg(args['item_id'])}"
        return await client.put(path, {"collection_id": args["collection_id"]})

    return registry
