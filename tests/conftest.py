"""Shared fixtures: a scripted Metabase stub behind ``httpx.MockTransport``."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from metabase_mcp.core.client import MetabaseClient
from metabase_mcp.core.credentials import ApiKey, BasicAuth
from metabase_mcp.core.session import SessionManager

BASE_URL = "https://metabase.test"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class MetabaseStub:
    """Answers requests from a ``(METHOD, path) -> reply`` table and records them.

    Unrouted requests get a 404 so fallback chains can move on.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def route(self, method: str, path: str, *replies: Reply) -> "MetabaseStub":
        """Queue replies; the last one repeats once the queue drains."""
        self.routes[(method.upper(), path)] = list(replies)
        return self

    def json(self, method: str, path: str, body: Any, status_code: int = 200) -> "MetabaseStub":
        return self.route(method, path, httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(404, json={"message": "Not found."})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        return reply(request) if callable(reply) else reply

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method) and (path is None or request.url.path == path)
        ]

    def call_log(self) -> List[str]:
        return [f"{request.method} {request.url.path}" for request in self.requests]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def stub() -> MetabaseStub:
    return MetabaseStub()


@pytest_asyncio.fixture
async def client(stub):
    async with MetabaseClient(BASE_URL, transport=stub.transport()) as metabase_client:
        yield metabase_client


@pytest.fixture
def api_key_session(client):
    return SessionManager(ApiKey("mb_test_key"), client)


@pytest.fixture
def basic_session(client):
    return SessionManager(BasicAuth("ada@example.com", "s3cret-pass"), client)
