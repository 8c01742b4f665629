"""Tests for MetabaseClient request shaping and body decoding."""

from __future__ import annotations

import httpx
import pytest


class TestMetabaseClient:
    @pytest.mark.asyncio
    async def test_decodes_json(self, client, stub):
        stub.json("GET", "/api/card/1", {"id": 1, "name": "Revenue"})
        assert await client.get("/api/card/1") == {"id": 1, "name": "Revenue"}

    @pytest.mark.asyncio
    async def test_empty_and_no_content_bodies_decode_to_none(self, client, stub):
        stub.route("DELETE", "/api/card/1", httpx.Response(204))
        stub.route("POST", "/api/card/1/copy", httpx.Response(200, content=b""))

        assert await client.delete("/api/card/1") is None
        assert await client.post("/api/card/1/copy") is None

    @pytest.mark.asyncio
    async def test_non_json_body_decodes_to_text(self, client, stub):
        stub.route("POST", "/api/dataset/csv", httpx.Response(200, text="a,b\n1,2\n"))
        assert await client.post("/api/dataset/csv", {"query": {}}) == "a,b\n1,2\n"

    @pytest.mark.asyncio
    async def test_none_params_are_dropped(self, client, stub):
        stub.json("GET", "/api/table", [])

        await client.get("/api/table", params={"ids": None, "limit": 5})

        assert dict(stub.requests[0].url.params) == {"limit": "5"}

    @pytest.mark.asyncio
    async def test_non_2xx_raises_status_error(self, client, stub):
        stub.json("GET", "/api/card/9", {"message": "Not found."}, status_code=404)

        with pytest.raises(httpx.HTTPStatusError):
            await client.get("/api/card/9")

    @pytest.mark.asyncio
    async def test_default_headers_apply_to_every_request(self, client, stub):
        stub.json("GET", "/api/user", [])
        client.set_default_header("X-Metabase-Session", "tok")

        await client.get("/api/user")

        request = stub.requests[0]
        assert request.headers["X-Metabase-Session"] == "tok"
        assert request.headers["Accept"] == "application/json"
