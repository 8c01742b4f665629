"""Tests for the composed catalog and a sample of pass-through tools."""

from __future__ import annotations

import json

import pytest

from metabase_mcp.core.responses import ErrorCode
from metabase_mcp.tools.catalog import build_catalog
from metabase_mcp.tools.context import ToolContext
from metabase_mcp.tools.dispatcher import Dispatcher

EXPECTED_CATEGORIES = {
    "dashboard",
    "card",
    "database",
    "table",
    "collection",
    "user",
    "permission",
    "search",
    "activity",
    "dataset",
}


@pytest.fixture
def catalog(client):
    return build_catalog(ToolContext.for_client(client))


@pytest.fixture
def dispatcher(catalog, api_key_session):
    return Dispatcher(catalog, api_key_session)


class TestCatalog:
    def test_categories_compose_without_conflicts(self, catalog):
        assert set(catalog.categories()) == EXPECTED_CATEGORIES
        assert len(catalog) == len(set(catalog.names()))

    def test_every_descriptor_is_an_object_schema(self, catalog):
        for descriptor in catalog.list_descriptors():
            assert descriptor.description
            assert descriptor.input_schema["type"] == "object"
            required = descriptor.input_schema.get("required", [])
            assert set(required) <= set(descriptor.input_schema["properties"])

    def test_disabled_tools_are_removed(self, client):
        catalog = build_catalog(ToolContext.for_client(client), ["delete_dashboard", "delete_card"])
        assert "delete_dashboard" not in catalog
        assert "delete_card" not in catalog
        assert "list_dashboards" in catalog

    @pytest.mark.parametrize(
        "name",
        [
            "add_card_to_dashboard",
            "execute_card",
            "execute_query",
            "get_table_data",
            "move_to_collection",
            "create_user",
            "create_permission_group",
            "search_content",
            "get_recents",
            "export_dataset",
        ],
    )
    def test_known_tools_are_registered(self, catalog, name):
        assert name in catalog


class TestPassThroughTools:
    @pytest.mark.asyncio
    async def test_execute_query_builds_native_dataset(self, dispatcher, stub):
        stub.json("POST", "/api/dataset", {"data": {"rows": [[1]]}})

        await dispatcher.invoke("execute_query", {"database_id": 2, "query": "select 1"})

        assert stub.body(stub.requests[0]) == {
            "type": "native",
            "native": {"query": "select 1", "template_tags": {}},
            "parameters": [],
            "database": 2,
        }

    @pytest.mark.asyncio
    async def test_search_joins_models(self, dispatcher, stub):
        stub.json("GET", "/api/search", {"data": []})

        await dispatcher.invoke("search_content", {"query": "revenue", "models": ["card", "dashboard"]})

        params = stub.requests[0].url.params
        assert params["q"] == "revenue"
        assert params["models"] == "card,dashboard"

    @pytest.mark.asyncio
    async def test_list_tables_sends_comma_ids(self, dispatcher, stub):
        stub.json("GET", "/api/table", [])

        await dispatcher.invoke("list_tables", {"ids": [1, 2]})

        assert stub.requests[0].url.params["ids"] == "1,2"

    @pytest.mark.asyncio
    async def test_csv_append_is_multipart(self, dispatcher, stub):
        stub.json("POST", "/api/table/4/append-csv", {"ok": True})

        await dispatcher.invoke("append_csv_to_table", {"table_id": 4, "csv_content": "a,b\n1,2\n"})

        request = stub.requests[0]
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="upload.csv"' in request.content
        assert b"a,b\n1,2\n" in request.content

    @pytest.mark.asyncio
    async def test_move_to_root_collection_sends_null(self, dispatcher, stub):
        stub.json("PUT", "/api/card/3", {"id": 3})

        await dispatcher.invoke("move_to_collection", {"item_type": "card", "item_id": 3, "collection_id": None})

        assert stub.body(stub.requests[0]) == {"collection_id": None}

    @pytest.mark.asyncio
    async def test_move_to_collection_requires_collection_key(self, dispatcher, stub):
        envelope = await dispatcher.invoke("move_to_collection", {"item_type": "card", "item_id": 3})

        assert envelope.code is ErrorCode.INVALID_ARGUMENTS
        assert envelope.details["field"] == "collection_id"
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_create_user_maps_group_memberships(self, dispatcher, stub):
        stub.json("POST", "/api/user", {"id": 9})

        await dispatcher.invoke(
            "create_user",
            {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com", "group_ids": [1, 3]},
        )

        assert stub.body(stub.requests[0])["user_group_memberships"] == [{"id": 1}, {"id": 3}]

    @pytest.mark.asyncio
    async def test_list_collections_archived_flag(self, dispatcher, stub):
        stub.json("GET", "/api/collection", [])

        await dispatcher.invoke("list_collections", {"archived": True})

        assert stub.requests[0].url.params["archived"] == "true"

    @pytest.mark.asyncio
    async def test_get_recents_repeats_context(self, dispatcher, stub):
        stub.json("GET", "/api/activity/recents", {"recents": []})

        await dispatcher.invoke("get_recents", {"context": ["views", "selections"]})

        params = stub.requests[0].url.params
        assert params.get_list("context") == ["views", "selections"]
        assert params["include_metadata"] == "false"

    @pytest.mark.asyncio
    async def test_export_format_is_validated(self, dispatcher, stub):
        envelope = await dispatcher.invoke("export_dataset", {"export_format": "pdf", "query": {}})

        assert envelope.code is ErrorCode.INVALID_ARGUMENTS
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_delete_card_archives(self, dispatcher, stub):
        stub.json("PUT", "/api/card/8", {"id": 8})

        envelope = await dispatcher.invoke("delete_card", {"card_id": 8})

        assert envelope.text == "Card 8 archived."
        assert json.loads(stub.requests[0].content) == {"archived": True}


# ---------------------------------------------------------------------------
# Argument checks happen before the session exchange
# ---------------------------------------------------------------------------


class TestValidationBeforeLogin:
    @pytest.fixture
    def login_dispatcher(self, catalog, basic_session):
        return Dispatcher(catalog, basic_session)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,args",
        [
            ("update_dashboard", {"dashboard_id": 5}),
            ("update_card", {"card_id": 5, "updated_fields": {}}),
            ("update_dashboard_card", {"dashboard_id": 5, "dashcard_id": 9}),
            ("update_database", {"database_id": 2}),
            ("update_table", {"table_id": 4}),
            ("update_collection", {"collection_id": 3}),
            ("update_user", {"user_id": 1}),
        ],
    )
    async def test_empty_update_fails_without_any_request(self, login_dispatcher, stub, name, args):
        envelope = await login_dispatcher.invoke(name, args)

        assert envelope.code is ErrorCode.INVALID_ARGUMENTS
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_update_dashboard_sends_supplied_fields(self, dispatcher, stub):
        stub.json("PUT", "/api/dashboard/5", {"id": 5})

        await dispatcher.invoke("update_dashboard", {"dashboard_id": 5, "name": "Revenue"})

        assert stub.body(stub.requests[0]) == {"name": "Revenue"}

    @pytest.mark.asyncio
    async def test_update_card_sends_updated_fields(self, dispatcher, stub):
        stub.json("PUT", "/api/card/5", {"id": 5})

        await dispatcher.invoke("update_card", {"card_id": 5, "updated_fields": {"name": "Churn"}})

        assert stub.body(stub.requests[0]) == {"name": "Churn"}


class TestIntegralFloatIds:
    @pytest.mark.asyncio
    async def test_float_id_is_sent_as_integer_path_segment(self, dispatcher, stub):
        stub.json("GET", "/api/dashboard/5", {"id": 5})

        envelope = await dispatcher.invoke("get_dashboard", {"dashboard_id": 5.0})

        assert not envelope.is_error
        assert stub.call_log() == ["GET /api/dashboard/5"]
