"""Table tools.

CSV append/replace upload the file content as a multipart ``file`` part.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.param_schema import AtLeastOne, Bool, Dict_, List_, Num, Str, ids_param, omit, pick
from metabase_mcp.tools.registry import CapabilityRegistry

_TABLE_ID = Num(required=True, integer_only=True, description="ID of the table")
_CARD_ID = Num(required=True, integer_only=True, description="ID of the card backing the virtual table")
_VISIBILITY = frozenset({"cruft", "hidden", "technical"})

_TABLE_UPDATE_FIELDS = (
    "display_name",
    "description",
    "caveats",
    "points_of_interest",
    "entity_type",
    "visibility_type",
    "show_in_getting_started",
    "field_order",
)

_TABLE_UPDATE_PARAMS = {
    "display_name": Str(description="Display name for the table"),
    "description": Str(description="Description of the table"),
    "caveats": Str(description="Caveats for using the table"),
    "points_of_interest": Str(description="Points of interest for the table"),
    "entity_type": Str(description="Entity type, e.g. entity/UserTable"),
    "visibility_type": Str(choices=_VISIBILITY, description="Visibility of the table"),
    "show_in_getting_started": Bool(description="Show the table in getting started"),
    "field_order": Str(choices=frozenset({"alphabetical", "custom", "database", "smart"})),
}

_METADATA_FLAGS = {
    "include_sensitive_fields": Bool(description="Include fields marked sensitive"),
    "include_hidden_fields": Bool(description="Include hidden fields"),
}


def csv_upload(filename: str, content: str) -> Dict[str, Tuple[str, bytes, str]]:
    """Multipart ``files`` mapping for a CSV upload."""
    return {"file": (filename, content.encode("utf-8"), "text/csv")}


def build_table_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("table")
    client = ctx.client

    @registry.capability(
        "list_tables",
        "List tables, optionally restricted to the given IDs",
        {"ids": List_(items={"type": "integer"}, description="Only return these table IDs")},
    )
    async def list_tables(args: dict) -> Any:
        return await client.get("/api/table", params={"ids": ids_param(args.get("ids"))})

    @registry.capability(
        "update_tables",
        "Update several tables at once",
        {
            "ids": List_(required=True, items={"type": "integer"}, min_items=1, description="IDs of the tables"),
            **{name: spec for name, spec in _TABLE_UPDATE_PARAMS.items() if name != "field_order"},
        },
    )
    async def update_tables(args: dict) -> Any:
        return await client.put("/api/table", omit(args))

    @registry.capability(
        "get_table",
        "Get a table with its fields",
        {
            "table_id": _TABLE_ID,
            **_METADATA_FLAGS,
            "include_editable_data_model": Bool(description="Include fields editable in the data model"),
        },
    )
    async def get_table(args: dict) -> Any:
        params = pick(args, "include_sensitive_fields", "include_hidden_fields", "include_editable_data_model")
        return await client.get(f"/api/table/{args['table_id']}", params=params)

    @registry.capability(
        "update_table",
        "Update a table's metadata",
        {"table_id": _TABLE_ID, **_TABLE_UPDATE_PARAMS},
        cross_field_rules=[AtLeastOne(_TABLE_UPDATE_FIELDS)],
    )
    async def update_table(args: dict) -> Any:
        return await client.put(f"/api/table/{args['table_id']}", omit(args, "table_id"))

    @registry.capability("get_table_fks", "Get foreign keys that reference a table", {"table_id": _TABLE_ID})
    async def get_table_fks(args: dict) -> Any:
        return await client.get(f"/api/table/{args['table_id']}/fks")

    @registry.capability(
        "get_card_table_fks",
        "Get foreign keys of the virtual table backed by a card",
        {"card_id": _CARD_ID},
    )
    async def get_card_table_fks(args: dict) -> Any:
        return await client.get(f"/api/table/card__{args['card_id']}/fks")

    @registry.capability(
        "get_table_query_metadata",
        "Get query metadata for a table",
        {"table_id": _TABLE_ID, **_METADATA_FLAGS},
    )
    async def get_table_query_metadata(args: dict) -> Any:
        params = pick(args, "include_sensitive_fields", "include_hidden_fields")
        return await client.get(f"/api/table/{args['table_id']}/query_metadata", params=params)

    @registry.capability(
        "get_card_table_query_metadata",
        "Get query metadata of the virtual table backed by a card",
        {"card_id": _CARD_ID},
    )
    async def get_card_table_query_metadata(args: dict) -> Any:
        return await client.get(f"/api/table/card__{args['card_id']}/query_metadata")

    @registry.capability("get_table_related", "Get entities related to a table", {"table_id": _TABLE_ID})
    async def get_table_related(args: dict) -> Any:
        return await client.get(f"/api/table/{args['table_id']}/related")

    @registry.capability(
        "get_table_data",
        "Get rows from a table",
        {
            "table_id": _TABLE_ID,
            "limit": Num(integer_only=True, min_val=1, description="Maximum number of rows"),
            "offset": Num(integer_only=True, min_val=0, description="Rows to skip"),
        },
    )
    async def get_table_data(args: dict) -> Any:
        return await client.get(f"/api/table/{args['table_id']}/data", params=pick(args, "limit", "offset"))

    @registry.capability(
        "reorder_table_fields",
        "Set a custom order for a table's fields",
        {
            "table_id": _TABLE_ID,
            "field_order": List_(required=True, items={"type": "integer"}, min_items=1, description="Field IDs in order"),
        },
    )
    async def reorder_table_fields(args: dict) -> Any:
        return await client.put(f"/api/table/{args['table_id']}/fields/order", {"field_order": args["field_order"]})

    @registry.capability(
        "discard_table_field_values",
        "Discard cached field values for a table",
        {"table_id": _TABLE_ID},
    )
    async def discard_table_field_values(args: dict) -> Any:
        return await client.post(f"/api/table/{args['table_id']}/discard_values")

    @registry.capability(
        "rescan_table_field_values",
        "Trigger a rescan of cached field values for a table",
        {"table_id": _TABLE_ID},
    )
    async def rescan_table_field_values(args: dict) -> Any:
        return await client.post(f"/api/table/{args['table_id']}/rescan_values")

    @registry.capability("sync_table_schema", "Trigger a schema sync for a table", {"table_id": _TABLE_ID})
    async def sync_table_schema(args: dict) -> Any:
        return await client.post(f"/api/table/{args['table_id']}/sync_schema")

    _CSV_PARAMS = {
        "table_id": _TABLE_ID,
        "csv_content": Str(required=True, strip=False, description="CSV file content"),
        "filename": Str(default="upload.csv", description="File name reported to Metabase"),
    }

    @registry.capability("append_csv_to_table", "Append rows from CSV content to an uploaded table", _CSV_PARAMS)
    async def append_csv_to_table(args: dict) -> Any:
        files = csv_upload(args["filename"], args["csv_content"])
        return await client.post(f"/api/table/{args['table_id']}/append-csv", files=files)

    @registry.capability("replace_table_csv", "Replace an uploaded table's rows with CSV content", _CSV_PARAMS)
    async def replace_table_csv(args: dict) -> Any:
        files = csv_upload(args["filename"], args["csv_content"])
        return await client.post(f"/api/table/{args['table_id']}/replace-csv", files=files)

    return registry
