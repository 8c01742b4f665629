"""Tests for SessionManager: API-key sessions, the session exchange and coalescing."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from metabase_mcp.core.errors import AuthenticationError
from metabase_mcp.core.session import (
    API_KEY_HEADER,
    API_KEY_SENTINEL,
    SESSION_ENDPOINT,
    SESSION_HEADER,
    SessionKind,
)


def _session_ok(token: str = "session-token-123"):
    return httpx.Response(200, json={"id": token})


# ---------------------------------------------------------------------------
# API key
# ---------------------------------------------------------------------------


class TestApiKeySession:
    @pytest.mark.asyncio
    async def test_session_exists_at_construction(self, api_key_session, client):
        session = api_key_session.session
        assert session is not None
        assert session.kind is SessionKind.API_KEY
        assert session.token == API_KEY_SENTINEL
        assert client.headers[API_KEY_HEADER] == "mb_test_key"

    @pytest.mark.asyncio
    async def test_ensure_authenticated_makes_no_request(self, api_key_session, stub):
        await api_key_session.ensure_authenticated()
        await api_key_session.ensure_authenticated()
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_key_is_not_in_repr(self, api_key_session):
        assert "mb_test_key" not in repr(api_key_session.credential)
        assert API_KEY_SENTINEL not in repr(api_key_session.session)


# ---------------------------------------------------------------------------
# Username / password exchange
# ---------------------------------------------------------------------------


class TestSessionExchange:
    @pytest.mark.asyncio
    async def test_no_session_before_first_call(self, basic_session, stub):
        assert basic_session.session is None
        assert basic_session.is_authenticated is False
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_exchange_caches_token_and_sets_header(self, basic_session, stub, client):
        stub.route("POST", SESSION_ENDPOINT, _session_ok("abc-123"))

        await basic_session.ensure_authenticated()

        request = stub.calls("POST", SESSION_ENDPOINT)[0]
        assert stub.body(request) == {"username": "ada@example.com", "password": "s3cret-pass"}
        assert basic_session.session.token == "abc-123"
        assert basic_session.session.kind is SessionKind.SESSION_TOKEN
        assert client.headers[SESSION_HEADER] == "abc-123"

    @pytest.mark.asyncio
    async def test_cached_token_skips_exchange(self, basic_session, stub):
        stub.route("POST", SESSION_ENDPOINT, _session_ok())

        await basic_session.ensure_authenticated()
        await basic_session.ensure_authenticated()

        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 1

    @pytest.mark.asyncio
    async def test_rejected_exchange_raises_authentication_error(self, basic_session, stub):
        stub.json("POST", SESSION_ENDPOINT, {"errors": {"password": "did not match"}}, status_code=401)

        with pytest.raises(AuthenticationError) as exc_info:
            await basic_session.ensure_authenticated()

        assert "401" in exc_info.value.message
        assert isinstance(exc_info.value.original_error, httpx.HTTPStatusError)
        assert basic_session.session is None

    @pytest.mark.asyncio
    async def test_unreachable_server_raises_authentication_error(self, basic_session, stub):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        stub.route("POST", SESSION_ENDPOINT, refuse)

        with pytest.raises(AuthenticationError):
            await basic_session.ensure_authenticated()

    @pytest.mark.asyncio
    async def test_response_without_id_raises(self, basic_session, stub):
        stub.json("POST", SESSION_ENDPOINT, {"unexpected": True})

        with pytest.raises(AuthenticationError):
            await basic_session.ensure_authenticated()
        assert basic_session.session is None

    @pytest.mark.asyncio
    async def test_failure_is_not_retried_but_next_call_starts_fresh(self, basic_session, stub):
        stub.route(
            "POST",
            SESSION_ENDPOINT,
            httpx.Response(503, json={"message": "starting up"}),
            _session_ok("second-try"),
        )

        with pytest.raises(AuthenticationError):
            await basic_session.ensure_authenticated()
        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 1

        await basic_session.ensure_authenticated()
        assert basic_session.session.token == "second-try"
        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 2


# ---------------------------------------------------------------------------
# Coalescing
# ---------------------------------------------------------------------------


class TestCoalescing:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_exchange(self, basic_session, stub):
        stub.route("POST", SESSION_ENDPOINT, _session_ok())

        await asyncio.gather(*(basic_session.ensure_authenticated() for _ in range(25)))

        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 1
        assert basic_session.session is not None

    @pytest.mark.asyncio
    async def test_concurrent_callers_all_see_the_failure(self, basic_session, stub):
        stub.json("POST", SESSION_ENDPOINT, {"message": "nope"}, status_code=401)

        results = await asyncio.gather(
            *(basic_session.ensure_authenticated() for _ in range(5)),
            return_exceptions=True,
        )

        assert all(isinstance(result, AuthenticationError) for result in results)
        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 1

    @pytest.mark.asyncio
    async def test_pending_slot_clears_after_completion(self, basic_session, stub):
        stub.route("POST", SESSION_ENDPOINT, _session_ok())

        await basic_session.ensure_authenticated()

        assert basic_session._pending is None

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_exchange(self, basic_session, stub):
        release = asyncio.Event()

        async def slow_exchange():
            await release.wait()

        stub.route("POST", SESSION_ENDPOINT, _session_ok())
        original = basic_session._authenticate

        async def gated():
            await slow_exchange()
            return await original()

        basic_session._authenticate = gated

        first = asyncio.create_task(basic_session.ensure_authenticated())
        second = asyncio.create_task(basic_session.ensure_authenticated())
        await asyncio.sleep(0)

        first.cancel()
        release.set()
        await second

        assert first.cancelled()
        assert basic_session.session is not None
        assert len(stub.calls("POST", SESSION_ENDPOINT)) == 1
