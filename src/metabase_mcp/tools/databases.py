"""Database tools, including native query execution."""

from __future__ import annotations

from typing import Any, Dict

from metabase_mcp.tools.context import ToolContext, seg
from metabase_mcp.tools.param_schema import AtLeastOne, Bool, Dict_, List_, Num, Str, omit, pick
from metabase_mcp.tools.registry import CapabilityRegistry

_DATABASE_ID = Num(required=True, integer_only=True, description="ID of the database")
_SCHEMA_NAME = Str(required=True, description="Name of the schema")

_DATABASE_UPDATE_FIELDS = ("name", "engine", "details", "is_full_sync", "is_on_demand", "auto_run_queries", "caveats")


def native_query_body(database_id: int, query: str, parameters: Any = None) -> Dict[str, Any]:
    """Request body for ``POST /api/dataset`` running a native (SQL) query."""
    return {
        "type": "native",
        "native": {"query": query, "template_tags": {}},
        "parameters": parameters or [],
        "database": database_id,
    }


def build_database_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("database")
    client = ctx.client

    @registry.capability(
        "list_databases",
        "List all databases in Metabase",
        {"include": Str(choices=frozenset({"tables"}), description="Set to 'tables' to include each database's tables")},
    )
    async def list_databases(args: dict) -> Any:
        return await client.get("/api/database", params=pick(args, "include"))

    @registry.capability(
        "get_database",
        "Get a specific database by ID",
        {"database_id": _DATABASE_ID, "include": Str(choices=frozenset({"tables", "tables.fields"}))},
    )
    async def get_database(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}", params=pick(args, "include"))

    @registry.capability(
        "create_database",
        "Add a new database connection to Metabase",
        {
            "name": Str(required=True, description="Display name of the database"),
            "engine": Str(required=True, description="Database engine, e.g. postgres, mysql, h2"),
            "details": Dict_(required=True, description="Engine-specific connection details"),
            "is_full_sync": Bool(description="Sync all tables and fields"),
            "is_on_demand": Bool(description="Scan field values on demand"),
            "auto_run_queries": Bool(description="Run queries automatically in the query builder"),
        },
    )
    async def create_database(args: dict) -> Any:
        body = pick(args, "name", "engine", "details", "is_full_sync", "is_on_demand", "auto_run_queries")
        return await client.post("/api/database", body)

    @registry.capability(
        "update_database",
        "Update a database connection's settings",
        {
            "database_id": _DATABASE_ID,
            "name": Str(description="New display name"),
            "engine": Str(description="Database engine"),
            "details": Dict_(description="Engine-specific connection details"),
            "is_full_sync": Bool(),
            "is_on_demand": Bool(),
            "auto_run_queries": Bool(),
            "caveats": Str(description="Caveats shown to users of this database"),
        },
        cross_field_rules=[AtLeastOne(_DATABASE_UPDATE_FIELDS)],
    )
    async def update_database(args: dict) -> Any:
        return await client.put(f"/api/database/{args['database_id']}", omit(args, "database_id"))

    @registry.capability("delete_database", "Remove a database connection", {"database_id": _DATABASE_ID})
    async def delete_database(args: dict) -> Any:
        await client.delete(f"/api/database/{args['database_id']}")
        return f"Database {args['database_id']} deleted."

    @registry.capability("create_sample_database", "Add the Metabase sample database")
    async def create_sample_database(args: dict) -> Any:
        return await client.post("/api/database/sample_database")

    @registry.capability(
        "get_database_metadata",
        "Get the full metadata (tables and fields) of a database",
        {"database_id": _DATABASE_ID},
    )
    async def get_database_metadata(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/metadata")

    @registry.capability("get_database_schemas", "List schemas of a database", {"database_id": _DATABASE_ID})
    async def get_database_schemas(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/schemas")

    @registry.capability(
        "get_database_schema_tables",
        "List tables in one schema of a database",
        {"database_id": _DATABASE_ID, "schema_name": _SCHEMA_NAME},
    )
    async def get_database_schema_tables(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/schema/{seg(args['schema_name'])}")

    @registry.capability("get_database_fields", "List all fields of a database", {"database_id": _DATABASE_ID})
    async def get_database_fields(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/fields")

    @registry.capability("get_database_idfields", "List primary key fields of a database", {"database_id": _DATABASE_ID})
    async def get_database_idfields(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/idfields")

    @registry.capability("get_database_healthcheck", "Check whether a database is reachable", {"database_id": _DATABASE_ID})
    async def get_database_healthcheck(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/healthcheck")

    @registry.capability("sync_database_schema", "Trigger a schema sync for a database", {"database_id": _DATABASE_ID})
    async def sync_database_schema(args: dict) -> Any:
        return await client.post(f"/api/database/{args['database_id']}/sync_schema")

    @registry.capability(
        "rescan_database_field_values",
        "Trigger a rescan of cached field values for a database",
        {"database_id": _DATABASE_ID},
    )
    async def rescan_database_field_values(args: dict) -> Any:
        return await client.post(f"/api/database/{args['database_id']}/rescan_values")

    @registry.capability(
        "discard_database_field_values",
        "Discard cached field values for a database",
        {"database_id": _DATABASE_ID},
    )
    async def discard_database_field_values(args: dict) -> Any:
        return await client.post(f"/api/database/{args['database_id']}/discard_values")

    @registry.capability(
        "get_database_syncable_schemas",
        "List schemas Metabase can sync for a database",
        {"database_id": _DATABASE_ID},
    )
    async def get_database_syncable_schemas(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/syncable_schemas")

    @registry.capability(
        "get_database_usage_info",
        "Count the questions, models and segments built on a database",
        {"database_id": _DATABASE_ID},
    )
    async def get_database_usage_info(args: dict) -> Any:
        return await client.get(f"/api/database/{args['database_id']}/usage_info")

    @registry.capability(
        "execute_query",
        "Execute a native SQL query against a Metabase database",
        {
            "database_id": Num(required=True, integer_only=True, description="ID of the database to query"),
            "query": Str(required=True, description="SQL query to execute"),
            "native_parameters": List_(items={"type": "object"}, description="Optional parameters for the query"),
        },
    )
    async def execute_query(args: dict) -> Any:
        body = native_query_body(args["database_id"], args["query"], args.get("native_parameters"))
        return await client.post("/api/dataset", body)

    return registry
