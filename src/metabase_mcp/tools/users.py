"""User and permission group tools."""

from __future__ import annotations

from typing import Any

from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.param_schema import AtLeastOne, Bool, Dict_, List_, Num, Str, omit, pick
from metabase_mcp.tools.registry import CapabilityRegistry

_USER_ID = Num(required=True, integer_only=True, description="ID of the user")
_GROUP_ID = Num(required=True, integer_only=True, description="ID of the permission group")
_GROUP_IDS = List_(items={"type": "integer"}, description="IDs of the permission groups to assign the user to")

_USER_UPDATE_FIELDS = ("first_name", "last_name", "email", "is_superuser", "locale", "login_attributes", "group_ids")


def _memberships(group_ids):
    return [{"id": group_id} for group_id in group_ids]


def build_user_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("user")
    client = ctx.client

    @registry.capability(
        "list_users",
        "List all users in Metabase",
        {"include_deactivated": Bool(default=False, description="Include deactivated users")},
    )
    async def list_users(args: dict) -> Any:
        params = {"include_deactivated": True} if args["include_deactivated"] else None
        return await client.get("/api/user", params=params)

    @registry.capability("get_user", "Get a user by ID", {"user_id": _USER_ID})
    async def get_user(args: dict) -> Any:
        return await client.get(f"/api/user/{args['user_id']}")

    @registry.capability(
        "create_user",
        "Create a new Metabase user",
        {
            "first_name": Str(required=True, description="User's first name"),
            "last_name": Str(required=True, description="User's last name"),
            "email": Str(required=True, description="User's email address"),
            "password": Str(strip=False, description="User's password"),
            "group_ids": _GROUP_IDS,
        },
    )
    async def create_user(args: dict) -> Any:
        body = pick(args, "first_name", "last_name", "email", "password")
        if args.get("group_ids"):
            body["user_group_memberships"] = _memberships(args["group_ids"])
        return await client.post("/api/user", body)

    @registry.capability(
        "update_user",
        "Update an existing user",
        {
            "user_id": _USER_ID,
            "first_name": Str(),
            "last_name": Str(),
            "email": Str(),
            "is_superuser": Bool(),
            "locale": Str(description="Preferred locale, e.g. en"),
            "login_attributes": Dict_(description="Attributes used for sandboxing"),
            "group_ids": _GROUP_IDS,
        },
        cross_field_rules=[AtLeastOne(_USER_UPDATE_FIELDS)],
    )
    async def update_user(args: dict) -> Any:
        body = omit(args, "user_id", "group_ids")
        if args.get("group_ids") is not None:
            body["user_group_memberships"] = _memberships(args["group_ids"])
        return await client.put(f"/api/user/{args['user_id']}", body)

    @registry.capability("delete_user", "Deactivate a user", {"user_id": _USER_ID})
    async def delete_user(args: dict) -> Any:
        await client.delete(f"/api/user/{args['user_id']}")
        return f"User {args['user_id']} deactivated."

    return registry


def build_permission_tools(ctx: ToolContext) -> CapabilityRegistry:
    registry = CapabilityRegistry("permission")
    client = ctx.client
    name_param = Str(required=True, description="Name of the permission group")

    @registry.capability("list_permission_groups", "List all permission groups")
    async def list_permission_groups(args: dict) -> Any:
        return await client.get("/api/permissions/group")

    @registry.capability("create_permission_group", "Create a new permission group", {"name": name_param})
    async def create_permission_group(args: dict) -> Any:
        return await client.post("/api/permissions/group", {"name": args["name"]})

    @registry.capability(
        "update_permission_group",
        "Rename a permission group",
        {"group_id": _GROUP_ID, "name": name_param},
    )
    async def update_permission_group(args: dict) -> Any:
        return await client.put(f"/api/permissions/group/{args['group_id']}", {"name": args["name"]})

    @registry.capability("delete_permission_group", "Delete a permission group", {"group_id": _GROUP_ID})
    async def delete_permission_group(args: dict) -> Any:
        await client.delete(f"/api/permissions/group/{args['group_id']}")
        return f"Permission group {args['group_id']} deleted."

    return registry
